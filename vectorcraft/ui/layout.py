"""Gradio layout composition for generation, refinement, history and export."""

from __future__ import annotations

from typing import Any, Optional

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from vectorcraft.generation.models import GenerationMode
from vectorcraft.services.workbench import Workbench, build_workbench
from vectorcraft.ui.callbacks import RESOLUTION_PRESETS, build_callbacks, history_rows

LANGUAGES = ["en", "es", "hi", "ru", "zh"]


def build_app(config: AppConfig, workbench: Optional[Workbench] = None) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio is not installed; install the project dependencies first.")

    workbench = workbench or build_workbench(config)
    callbacks_map = build_callbacks(workbench)

    backend_choices = workbench.composer.available_backends() or [config.default_backend]
    default_backend = workbench.composer.default_backend()
    current = workbench.current
    initial_markup = current.markup if current else ""
    welcome = "Welcome back." if workbench.has_visited() else "Describe an object to draw."

    with gr.Blocks(title="VectorCraft AI") as demo:
        with gr.Row():
            gr.Markdown("## VectorCraft AI")
            language = gr.Dropdown(
                label="Language",
                choices=LANGUAGES,
                value=workbench.language,
                scale=0,
            )

        with gr.Row():
            with gr.Column():
                mode = gr.Radio(
                    label="Mode",
                    choices=[item.value for item in GenerationMode],
                    value=GenerationMode.CREATE.value,
                )
                text = gr.Textbox(
                    label="Object description / change instructions",
                    lines=3,
                    placeholder="A red circle with a soft shadow",
                )
                style_prompt = gr.Textbox(label="Visual style (optional)", lines=2)
                technical_spec = gr.Textbox(label="Animation / interaction specs (optional)", lines=2)
                source_file = gr.File(label="Source SVG (transform mode)", file_types=[".svg"])
                source_text = gr.Code(label="Source SVG markup (paste or upload)", language="html")
                reference_files = gr.File(
                    label="Reference images",
                    file_count="multiple",
                    file_types=["image"],
                )
                urls = gr.Textbox(label="Reference URLs (one per line)", lines=2)
                with gr.Row():
                    use_search = gr.Checkbox(label="Use web search", value=False)
                    backend = gr.Dropdown(label="Model", choices=backend_choices, value=default_backend)
                with gr.Row():
                    resolution = gr.Dropdown(label="Resolution", choices=RESOLUTION_PRESETS, value="512x512")
                    width = gr.Number(label="Width", value=512, precision=0)
                    height = gr.Number(label="Height", value=512, precision=0)
                generate_btn = gr.Button("Generate SVG", variant="primary")

            with gr.Column():
                preview = gr.HTML(initial_markup)
                status = gr.Markdown(welcome)
                with gr.Row():
                    refine_text = gr.Textbox(label="Refine", placeholder="Make the outline thicker", scale=4)
                    refine_btn = gr.Button("Refine", scale=1)
                markup = gr.Code(label="SVG code", language="html", value=initial_markup)
                with gr.Row():
                    export_format = gr.Radio(label="Export as", choices=["svg", "png", "zip"], value="svg")
                    export_btn = gr.Button("Export")
                export_file = gr.File(label="Download")

        with gr.Accordion("History", open=False):
            history = gr.Dataframe(
                headers=["id", "prompt", "time"],
                value=history_rows(workbench.history),
                interactive=False,
            )
            with gr.Row():
                history_id = gr.Textbox(label="Entry id", scale=3)
                restore_btn = gr.Button("Restore", scale=1)
                delete_btn = gr.Button("Delete", scale=1)
                clear_btn = gr.Button("Clear all", variant="stop", scale=1)

        generate_btn.click(
            fn=callbacks_map["on_generate"],
            inputs=[
                mode,
                text,
                style_prompt,
                technical_spec,
                source_file,
                source_text,
                reference_files,
                urls,
                use_search,
                resolution,
                width,
                height,
                backend,
            ],
            outputs=[markup, preview, status, history],
        )
        source_file.upload(
            fn=callbacks_map["on_source_upload"],
            inputs=[source_file],
            outputs=[source_text],
        )
        refine_btn.click(
            fn=callbacks_map["on_refine"],
            inputs=[refine_text, backend],
            outputs=[markup, preview, status, history],
        )
        restore_btn.click(
            fn=callbacks_map["on_restore"],
            inputs=[history_id],
            outputs=[markup, preview, status, history],
        )
        delete_btn.click(fn=callbacks_map["on_delete"], inputs=[history_id], outputs=[history, status])
        clear_btn.click(fn=callbacks_map["on_clear"], inputs=[], outputs=[history, status])
        export_btn.click(
            fn=callbacks_map["on_export"],
            inputs=[export_format],
            outputs=[export_file, status],
        )
        language.change(fn=callbacks_map["on_language"], inputs=[language], outputs=[language])
        demo.load(fn=callbacks_map["on_history"], inputs=[], outputs=[history])

    return demo
