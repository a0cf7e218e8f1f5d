"""
Gradio latent-space navigator.

Map hover/click arrive through hidden textboxes fed by MAP_POINTER_JS;
every other control is a regular Gradio event. All handlers share one
Navigator, so the app is a single-user exploration tool. Every handler is
a coroutine: session updates only happen on the event loop.
"""

import argparse
import json
from typing import Optional

import gradio as gr

from latentnav.config import load_config
from latentnav.core.errors import ValidationError
from latentnav.core.state import RANGE_MULTIPLIERS
from latentnav.data.images import decode_image
from latentnav.visualization.figures import create_map_figure
from latentnav.visualization.layout import CUSTOM_CSS, MAP_POINTER_JS
from latentnav.visualization.navigator import Navigator


def map_figure(navigator: Navigator):
    state = navigator.state
    rx, ry = state.bound_ranges
    return create_map_figure(
        navigator.training_df,
        state.binding.x_index,
        state.binding.y_index,
        rx,
        ry,
        size=navigator.config.plot_size,
        marker=navigator.marker(),
    )


def slider_label(navigator: Navigator, index: int) -> str:
    binding = navigator.state.binding
    label = f"c{index}"
    if index == binding.x_index:
        label += " [X]"
    elif index == binding.y_index:
        label += " [Y]"
    return label


def status_message(navigator: Navigator, message: Optional[str] = None) -> str:
    state = navigator.state
    parts = []
    if message:
        parts.append(message)
    elif state.last_error:
        parts.append(f"Error: {state.last_error}")
    if state.busy:
        parts.append("Generating...")
    if state.editing_id is not None:
        parts.append(f"Editing keyframe {state.editing_id}")
    grid = navigator.grid
    parts.append(f"Grid: {len(grid)} previews" if not grid.is_empty else "Grid: empty")
    return " | ".join(parts)


def _parse_pointer(data_json: str):
    """Decode a {px, py, size} bridge payload; None if malformed."""
    if not data_json:
        return None
    try:
        data = json.loads(data_json)
        return float(data["px"]), float(data["py"]), float(data["size"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        return None


def _parse_index(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def create_gradio_app(navigator: Navigator) -> gr.Blocks:
    """Create Gradio Blocks app.

    Note: In Gradio 6, theme/css/js are passed to launch() not Blocks().
    Use CUSTOM_CSS and MAP_POINTER_JS module constants when calling launch().
    """
    latent_dim = navigator.config.latent_dim
    component_choices = [(f"Component {i}", i) for i in range(latent_dim)]
    kinds = list(RANGE_MULTIPLIERS)

    with gr.Blocks(title="Latent Space Navigator") as app:

        gr.Markdown("# Latent Space Navigator")

        with gr.Row(elem_id="main-row"):
            # Left column: preview and image
            with gr.Column(scale=1, elem_id="left-sidebar"):
                with gr.Row():
                    model_dropdown = gr.Dropdown(
                        choices=[], label="Model", interactive=True, elem_id="model-dropdown"
                    )

                with gr.Group():
                    gr.Markdown("### Preview")
                    preview_image = gr.Image(
                        label=None, show_label=False, height=160, elem_id="preview-image"
                    )
                    snap_caption = gr.Markdown("SNAP: --", elem_id="snap-caption")

                with gr.Group():
                    gr.Markdown("### Generated")
                    exact_image = gr.Image(
                        label=None, show_label=False, height=220, elem_id="exact-image"
                    )
                    with gr.Row():
                        randomize_btn = gr.Button("Randomize", variant="primary", size="sm")
                        cancel_btn = gr.Button("Cancel", size="sm")
                    save_btn = gr.Button("Save Keyframe", size="sm")

            # Center column: map
            with gr.Column(scale=3, min_width=navigator.config.plot_size, elem_id="center-column"):
                # Hidden via CSS, must be in DOM for JS bridge
                hover_data_box = gr.Textbox(value="", elem_id="hover-data-box", visible=True)
                click_data_box = gr.Textbox(value="", elem_id="click-data-box", visible=True)
                with gr.Row():
                    x_dropdown = gr.Dropdown(
                        choices=component_choices,
                        value=navigator.state.binding.x_index,
                        label="X axis",
                        interactive=True,
                    )
                    y_dropdown = gr.Dropdown(
                        choices=component_choices,
                        value=navigator.state.binding.y_index,
                        label="Y axis",
                        interactive=True,
                    )
                    rebuild_btn = gr.Button("Rebuild Grid", size="sm")
                map_plot = gr.Plot(value=map_figure(navigator), elem_id="map-plot", show_label=False)
                status_text = gr.Markdown(status_message(navigator), elem_id="status-text")

            # Right column: sliders and timeline
            with gr.Column(scale=1, elem_id="right-sidebar"):
                with gr.Group():
                    gr.Markdown("### Components")
                    sliders = []
                    kind_dropdowns = []
                    ranges = navigator.state.ranges
                    for i in range(latent_dim):
                        with gr.Row():
                            half = ranges.half_range(i)
                            sliders.append(gr.Slider(
                                minimum=-half,
                                maximum=half,
                                step=ranges.slider_step(i),
                                value=0.0,
                                label=slider_label(navigator, i),
                                interactive=True,
                                scale=3,
                            ))
                            kind_dropdowns.append(gr.Dropdown(
                                choices=kinds,
                                value=ranges.kind(i),
                                show_label=False,
                                interactive=True,
                                scale=1,
                                min_width=80,
                            ))

                with gr.Group():
                    gr.Markdown("### Keyframes")
                    keyframe_table = gr.Dataframe(
                        value=navigator.timeline.to_frame(), interactive=False, wrap=True
                    )
                    with gr.Row():
                        keyframe_index = gr.Number(value=0, precision=0, label="Keyframe #")
                        duration_input = gr.Number(
                            value=navigator.config.default_duration, label="Duration (s)"
                        )
                    with gr.Row():
                        up_btn = gr.Button("Up", size="sm")
                        down_btn = gr.Button("Down", size="sm")
                        edit_btn = gr.Button("Edit", size="sm")
                        delete_btn = gr.Button("Delete", size="sm")
                    duration_btn = gr.Button("Set Duration", size="sm")
                    render_btn = gr.Button("Render Video", variant="primary")
                    video_output = gr.Video(label="Video", interactive=False)

        # --- Event Handlers ---

        def refresh(message: Optional[str] = None):
            """Values for the shared outputs after any state change."""
            state = navigator.state
            slider_updates = [
                gr.update(
                    value=state.slider_values[i],
                    minimum=-state.ranges.half_range(i),
                    maximum=state.ranges.half_range(i),
                    step=state.ranges.slider_step(i),
                    label=slider_label(navigator, i),
                )
                for i in range(latent_dim)
            ]
            return [
                map_figure(navigator),
                decode_image(state.image),
                status_message(navigator, message),
                navigator.timeline.to_frame(),
                *slider_updates,
            ]

        shared_outputs = [map_plot, exact_image, status_text, keyframe_table, *sliders]

        async def on_load():
            """Fetch training data, build the first grid and fill the model list."""
            await navigator.start()
            models = await navigator.list_models()
            model_update = gr.update(choices=models, value=models[0] if models else None)
            return [model_update, *refresh()]

        async def on_hover_data(hover_json):
            pointer = _parse_pointer(hover_json)
            if pointer is None:
                return gr.update(), gr.update()
            point = navigator.hover(*pointer)
            if point is None:
                return None, "SNAP: --"
            return decode_image(point.image), f"SNAP: {point.x:.2f}, {point.y:.2f}"

        async def on_click_data(click_json):
            pointer = _parse_pointer(click_json)
            if pointer is None:
                return [gr.update()] * len(shared_outputs)
            outcome = await navigator.click(*pointer)
            return refresh(outcome.message)

        async def on_randomize():
            outcome = await navigator.randomize()
            return refresh(outcome.message)

        async def on_cancel():
            navigator.cancel()
            return refresh()

        async def on_rebuild(progress=gr.Progress()):
            def report(done, total):
                progress(done / max(total, 1), desc=f"Grid {done}/{total}")

            grid = await navigator.rebuild_grid(progress=report)
            return refresh(f"Grid rebuilt: {len(grid)} previews")

        async def on_axis(x_index, y_index):
            ok = await navigator.set_axis(x_index=_parse_index(x_index), y_index=_parse_index(y_index))
            binding = navigator.state.binding
            if not ok:
                # Snap the dropdowns back to the binding that is still in effect
                return [binding.x_index, binding.y_index, *refresh()]
            return [gr.update(), gr.update(), *refresh()]

        def make_slider_handler(index: int):
            async def on_slider(value):
                outcome = await navigator.set_slider(index, value)
                return refresh(outcome.message)
            return on_slider

        def make_kind_handler(index: int):
            async def on_kind(kind):
                try:
                    await navigator.set_range_kind(index, kind)
                except ValidationError as e:
                    return refresh(str(e))
                return refresh()
            return on_kind

        def keyframe_action(action):
            """Run a timeline operation by position, reporting validation errors."""
            async def handler(index_value, *args):
                index = _parse_index(index_value)
                if index is None:
                    return refresh("Enter a keyframe number")
                try:
                    message = action(index, *args)
                except ValidationError as e:
                    message = str(e)
                return refresh(message)
            return handler

        def do_move_up(index):
            return None if navigator.move_keyframe(index, -1) else "Already first"

        def do_move_down(index):
            return None if navigator.move_keyframe(index, 1) else "Already last"

        def do_edit(index):
            if not 0 <= index < len(navigator.timeline):
                raise ValidationError(f"No keyframe at position {index}")
            frame = navigator.select_for_edit(navigator.timeline[index].id)
            return f"Editing keyframe {frame.id}: adjust and save to overwrite"

        def do_delete(index):
            frame = navigator.delete_keyframe(index)
            return f"Deleted keyframe {frame.id}"

        def do_duration(index, value):
            if value is None:
                raise ValidationError("Enter a duration")
            frame = navigator.set_duration(index, value)
            return f"Keyframe {frame.id} duration {frame.duration:.2f}s"

        async def on_save():
            try:
                frame = navigator.save_keyframe()
            except ValidationError as e:
                return refresh(str(e))
            return refresh(f"Saved keyframe {frame.id}")

        async def on_render():
            outcome = await navigator.render()
            return [navigator.video_url if outcome.ok else gr.update(), *refresh(outcome.message)]

        async def on_model_switch(model_name):
            if not model_name:
                return refresh()
            ok = await navigator.load_model(model_name)
            return refresh(f"Loaded {model_name}" if ok else None)

        # Wire up events
        app.load(on_load, outputs=[model_dropdown, *shared_outputs])

        # Gradio 6: use .change() instead of .input()
        hover_data_box.change(
            on_hover_data,
            inputs=[hover_data_box],
            outputs=[preview_image, snap_caption],
        )
        click_data_box.change(on_click_data, inputs=[click_data_box], outputs=shared_outputs)

        randomize_btn.click(on_randomize, outputs=shared_outputs)
        cancel_btn.click(on_cancel, outputs=shared_outputs)
        rebuild_btn.click(on_rebuild, outputs=shared_outputs)
        save_btn.click(on_save, outputs=shared_outputs)

        for dropdown in (x_dropdown, y_dropdown):
            dropdown.input(
                on_axis,
                inputs=[x_dropdown, y_dropdown],
                outputs=[x_dropdown, y_dropdown, *shared_outputs],
            )

        for i, slider in enumerate(sliders):
            slider.release(make_slider_handler(i), inputs=[slider], outputs=shared_outputs)
        for i, dropdown in enumerate(kind_dropdowns):
            dropdown.input(make_kind_handler(i), inputs=[dropdown], outputs=shared_outputs)

        up_btn.click(keyframe_action(do_move_up), inputs=[keyframe_index], outputs=shared_outputs)
        down_btn.click(keyframe_action(do_move_down), inputs=[keyframe_index], outputs=shared_outputs)
        edit_btn.click(keyframe_action(do_edit), inputs=[keyframe_index], outputs=shared_outputs)
        delete_btn.click(keyframe_action(do_delete), inputs=[keyframe_index], outputs=shared_outputs)
        duration_btn.click(
            keyframe_action(do_duration),
            inputs=[keyframe_index, duration_input],
            outputs=shared_outputs,
        )

        render_btn.click(on_render, outputs=[video_output, *shared_outputs])
        model_dropdown.input(on_model_switch, inputs=[model_dropdown], outputs=shared_outputs)

    return app


def launch(navigator: Navigator, port: int = 7860, share: bool = False) -> None:
    app = create_gradio_app(navigator)
    app.queue(max_size=20).launch(
        server_name="0.0.0.0",
        server_port=port,
        share=share,
        theme=gr.themes.Soft(),
        css=CUSTOM_CSS,
        js=MAP_POINTER_JS,
    )


def main():
    parser = argparse.ArgumentParser(description="Gradio Latent Space Navigator")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--server-url", type=str, default=None, help="Generation server URL")
    parser.add_argument("--mock", action="store_true", help="Use the offline mock service")
    parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=["direct", "base_delta"],
        help="Vector composition mode",
    )
    parser.add_argument("--port", type=int, default=7860, help="Port to run server on")
    parser.add_argument("--share", action="store_true", help="Create public share link")
    args = parser.parse_args()

    config = load_config(
        args.config,
        server_url=args.server_url,
        use_mock=True if args.mock else None,
        composition_mode=args.mode,
    )
    launch(Navigator(config), port=args.port, share=args.share)


if __name__ == "__main__":
    main()
