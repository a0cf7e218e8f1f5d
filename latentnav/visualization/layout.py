"""
Layout constants for the latentnav Gradio UI.

Contains CSS and JavaScript for the map interface.
"""

# JavaScript bridge from the map plot to Gradio.
# The map has hovermode off, so pointer offsets are read straight from the
# plot area and posted as {px, py, size}; Python maps them to latent space.
MAP_POINTER_JS = r"""
const bridge = {
    plot: null,
    hoverInput: null,
    clickInput: null,
    hoverTimer: null,
    lastHover: null,
    ready: false,
};

// Gradio 6 wraps each textbox; the bridge writes to the inner field
function bridgeInput(id) {
    const wrapper = document.getElementById(id);
    if (!wrapper) return null;
    return wrapper.querySelector('textarea, input');
}

function bindInputs() {
    bridge.hoverInput = bridge.hoverInput || bridgeInput('hover-data-box');
    bridge.clickInput = bridge.clickInput || bridgeInput('click-data-box');
    return Boolean(bridge.hoverInput && bridge.clickInput);
}

function post(input, payload) {
    input.value = JSON.stringify(payload);
    ['input', 'change'].forEach((name) => {
        input.dispatchEvent(new Event(name, { bubbles: true }));
    });
}

// Offset of the pointer inside the drag layer, scaled to a square of its width
function mapOffset(event) {
    const layer = bridge.plot.querySelector('.nsewdrag') || bridge.plot;
    const box = layer.getBoundingClientRect();
    if (box.width === 0 || box.height === 0) return null;
    const px = event.clientX - box.left;
    const py = (event.clientY - box.top) * box.width / box.height;
    const inside = px >= 0 && py >= 0 && px <= box.width && py <= box.width;
    return inside ? { px: px, py: py, size: box.width } : null;
}

function onMapClick(event) {
    const offset = mapOffset(event);
    if (offset) post(bridge.clickInput, offset);
}

function onMapMove(event) {
    const offset = mapOffset(event);
    if (!offset) return;
    const key = Math.round(offset.px) + ':' + Math.round(offset.py);
    if (key === bridge.lastHover) return;
    clearTimeout(bridge.hoverTimer);
    bridge.hoverTimer = setTimeout(() => {
        bridge.lastHover = key;
        post(bridge.hoverInput, offset);
    }, 60);
}

function mapDiv() {
    return document.querySelector('#map-plot .js-plotly-plot, #map-plot .plotly-graph-div');
}

function plotRendered(div) {
    return Boolean(div && div.layout && div.data);
}

// Gradio swaps the plot element on every figure update, so listeners are
// re-attached whenever a new element shows up
function attachMap() {
    const div = mapDiv();
    if (!plotRendered(div) || !bindInputs()) {
        setTimeout(attachMap, 300);
        return;
    }
    if (div.dataset.latentnavBound) return;
    div.dataset.latentnavBound = '1';
    div.addEventListener('click', onMapClick);
    div.addEventListener('mousemove', onMapMove);
    bridge.plot = div;
    bridge.ready = true;
}

function watchMap() {
    const container = document.getElementById('map-plot');
    if (!container) {
        setTimeout(watchMap, 500);
        return;
    }
    const observer = new MutationObserver(() => {
        if (bridge.ready) setTimeout(attachMap, 100);
    });
    observer.observe(container, { childList: true, subtree: true });
}

setTimeout(() => {
    attachMap();
    watchMap();
}, 1500);

// Fallback for swaps the observer misses
setInterval(() => {
    const div = mapDiv();
    if (bridge.ready && plotRendered(div) && !div.dataset.latentnavBound) attachMap();
}, 1000);
"""

# CSS for layout, map sizing, and reduced chrome
# Module-level for Gradio 6 compatibility (passed to launch() not Blocks())
CUSTOM_CSS = """
    .gradio-container {
        max-width: 100% !important;
        padding: 0.5rem !important;
        min-width: 900px !important;
    }

    #main-row {
        align-items: flex-start !important;
        flex-wrap: nowrap !important;
    }

    /* Sidebars: fixed width, scrollable */
    #left-sidebar, #right-sidebar {
        flex: 0 0 260px !important;
        max-height: 1100px !important;
        overflow-y: auto !important;
        padding: 0.25rem !important;
    }

    #center-column {
        display: flex !important;
        flex-direction: column !important;
        flex: 0 0 auto !important;
    }

    /* Map is square and must not be rescaled, pixel offsets depend on it */
    #map-plot {
        cursor: crosshair !important;
    }

    #map-plot > div,
    #map-plot .js-plotly-plot,
    #map-plot .plotly-graph-div {
        overflow: hidden !important;
    }

    /* Hidden textboxes for JS bridge */
    #click-data-box,
    div:has(> #click-data-box) {
        visibility: hidden !important;
        height: 0 !important;
        min-height: 0 !important;
        margin: 0 !important;
        padding: 0 !important;
        overflow: hidden !important;
    }

    #hover-data-box,
    div:has(> #hover-data-box) {
        display: none !important;
        height: 0 !important;
        margin: 0 !important;
        padding: 0 !important;
        overflow: hidden !important;
    }

    .gr-group {
        padding: 0.5rem !important;
        margin-bottom: 0.10rem !important;
    }

    .gr-group h3 {
        margin: 0 0 0.25rem 0 !important;
        font-size: 0.9rem !important;
    }

    /* Bound-axis sliders stand out */
    .bound-slider label {
        color: #4f46e5 !important;
        font-weight: 600 !important;
    }

    .gr-slider, .gr-number {
        margin-bottom: 0.25rem !important;
    }

    h1 {
        font-size: 1.5rem !important;
        margin: 0.25rem 0 0.5rem 0 !important;
    }

    #status-text {
        font-size: 0.8rem !important;
        color: #666 !important;
        margin: 0 !important;
        padding: 0 !important;
    }

    #status-text p {
        margin: 0 !important;
    }

    #snap-caption p {
        font-family: monospace !important;
        font-size: 0.8rem !important;
        margin: 0 !important;
    }

    /* Smooth scaling for small previews */
    #preview-image img,
    #exact-image img {
        image-rendering: auto !important;
    }

    #preview-image, #exact-image {
        display: flex !important;
        justify-content: center !important;
        align-items: center !important;
        overflow: hidden !important;
    }
"""
