"""JavaScript evaluated inside browser pages."""

# Resolves once the document title no longer looks like an anti-bot interstitial.
CHALLENGE_CLEARED = """(titles) => {
    const title = document.title || '';
    return !titles.some(t => title.includes(t));
}"""

# One combined evaluation: every optional pass mutates the live DOM first,
# and the document is serialized last so those mutations are captured.
EXTRACT_PAGE_DATA = """(opts) => {
    const result = { metadata: {}, cssClasses: [] };

    const metadata = {};
    const title = document.querySelector('title');
    if (title) metadata.title = (title.textContent || '').trim();
    document.querySelectorAll('meta').forEach((meta) => {
        const name = meta.getAttribute('name') || meta.getAttribute('property');
        const content = meta.getAttribute('content');
        if (name && content) metadata[name] = content;
    });
    const canonical = document.querySelector("link[rel='canonical']");
    if (canonical) metadata.canonical = canonical.getAttribute('href') || '';
    if (document.documentElement.lang) metadata.lang = document.documentElement.lang;
    result.metadata = metadata;

    if (opts.collectCssClasses) {
        const classSet = new Set();
        document.querySelectorAll('*').forEach((el) => {
            el.classList.forEach((cls) => classSet.add(cls));
        });
        result.cssClasses = Array.from(classSet).sort();
    }

    if (opts.extractVisibility) {
        let hidden = 0, invisible = 0, zeroOpacity = 0, offscreen = 0;
        const all = document.querySelectorAll('*');
        all.forEach((el) => {
            const computed = window.getComputedStyle(el);
            if (computed.display === 'none') {
                el.setAttribute('data-display-none', 'true');
                hidden++;
                return;
            }
            if (computed.visibility === 'hidden') {
                el.setAttribute('data-visibility-hidden', 'true');
                invisible++;
                return;
            }
            if (computed.opacity === '0') {
                el.setAttribute('data-opacity-zero', 'true');
                zeroOpacity++;
                return;
            }
            const rect = el.getBoundingClientRect();
            if (rect.width === 0 && rect.height === 0) offscreen++;
        });
        result.visibility = {
            totalElements: all.length,
            hiddenElements: hidden,
            invisibleElements: invisible,
            zeroOpacityElements: zeroOpacity,
            offscreenElements: offscreen,
        };
    }

    if (opts.extractImages) {
        let imagesAdded = 0, svgsAdded = 0, imagesWithDimensions = 0, svgsWithDimensions = 0;
        const images = document.querySelectorAll('img');
        images.forEach((img) => {
            // Aspect-ratio wrappers fight explicit dimensions
            let parent = img.parentElement;
            while (parent && parent.tagName !== 'BODY') {
                const style = parent.getAttribute('style');
                if (style && style.includes('padding-bottom')) parent.removeAttribute('style');
                parent = parent.parentElement;
            }
            if (!img.hasAttribute('width') && img.naturalWidth) {
                img.setAttribute('width', String(img.naturalWidth));
                imagesAdded++;
            }
            if (!img.hasAttribute('height') && img.naturalHeight) {
                img.setAttribute('height', String(img.naturalHeight));
            }
            if (img.hasAttribute('width') && img.hasAttribute('height')) imagesWithDimensions++;
            img.removeAttribute('onload');
            img.removeAttribute('style');
            img.setAttribute('loading', 'eager');
            if (!img.hasAttribute('alt')) img.setAttribute('alt', '');
        });

        const svgs = document.querySelectorAll('svg');
        svgs.forEach((svg) => {
            try {
                const box = svg.getBBox ? svg.getBBox() : null;
                if (box && !svg.hasAttribute('width') && !svg.hasAttribute('height')) {
                    svg.setAttribute('width', String(Math.ceil(box.width)));
                    svg.setAttribute('height', String(Math.ceil(box.height)));
                    svgsAdded++;
                }
            } catch (e) {}
            if (svg.hasAttribute('width') && svg.hasAttribute('height')) svgsWithDimensions++;
            if (!svg.hasAttribute('viewBox')) {
                const w = svg.getAttribute('width');
                const h = svg.getAttribute('height');
                if (w && h) svg.setAttribute('viewBox', `0 0 ${w} ${h}`);
            }
        });

        result.images = {
            totalImages: images.length,
            totalSVGs: svgs.length,
            imagesWithDimensions,
            imagesAdded,
            svgsWithDimensions,
            svgsAdded,
        };
    }

    if (opts.extractCss) {
        const sheets = [];
        Array.from(document.styleSheets).forEach((sheet) => {
            try {
                const rules = Array.from(sheet.cssRules || []).map((r) => r.cssText);
                sheets.push({ href: sheet.href, cssText: rules.join('\\n'), blocked: false });
            } catch (e) {
                // Cross-origin sheets throw on cssRules access
                sheets.push({ href: sheet.href, cssText: '', blocked: true });
            }
        });
        const inline = [];
        const styled = document.querySelectorAll('[style]');
        styled.forEach((el) => {
            const style = el.getAttribute('style');
            if (!style) return;
            const classes = Array.from(el.classList);
            const selector = classes.length ? '.' + classes.join('.') : el.tagName.toLowerCase();
            inline.push({ selector, style });
        });
        result.css = { sheets, inline, totalInlineStyles: styled.length };
    }

    result.html = document.documentElement.outerHTML;
    return result;
}"""
