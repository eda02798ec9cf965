"""Instruction templates and task-body assembly for SVG generation."""

from __future__ import annotations

from typing import List

from vectorcraft.generation.models import GenerationRequest, Resolution

DEFAULT_STYLE = "Modern, clean, flat art or material design."

_CREATE_ROLE = (
    "Your task is to generate a high-quality, visually striking and detailed SVG "
    "from the user's description."
)
_TRANSFORM_ROLE = (
    "Your task is to rebuild and upgrade an existing SVG according to new "
    "requirements, keeping what works in the source and changing what the "
    "requirements ask for."
)

_ENVIRONMENT_RULES = """\
Environment limitations (critical):
- The SVG is injected into a live DOM as static markup. <script> elements are NOT executed.
- Never define or call custom functions (for example onclick="playSound()" will fail).
- Express motion and interaction with CSS (:hover, :active, @keyframes) or SMIL (<animate>, <animateTransform>).
- Audio may be embedded as an <audio> element (inside <foreignObject> or hidden) with an id.
- Inline event handlers may only call standard DOM methods, e.g. onclick="document.getElementById('snd').play()".
"""


def build_system_instruction(request: GenerationRequest) -> str:
    """Return the system-level instruction for a create or transform request."""
    width = request.resolution.width
    height = request.resolution.height
    role = _TRANSFORM_ROLE if request.is_transform else _CREATE_ROLE
    instruction = (
        "You are a world-class expert in Scalable Vector Graphics (SVG) design and code.\n"
        f"{role}\n\n"
        "Guidelines:\n"
        "1. Output format: return ONLY the raw SVG code. Do not wrap it in markdown code "
        "fences and do not add any prose.\n"
        "2. Quality: use gradients, careful paths, distinct colors and clean code.\n"
        "3. Technical constraints:\n"
        f'   - ALWAYS set width="{width}" and height="{height}" on the root <svg>.\n'
        f'   - ALWAYS include a viewBox matching these dimensions, e.g. viewBox="0 0 {width} {height}".\n'
        "   - Keep the SVG self-contained and use semantic ids.\n"
        f"4. {_ENVIRONMENT_RULES}"
    )
    if request.technical_spec and request.technical_spec.strip():
        instruction += (
            "5. Functional / animation requirements:\n"
            f'   - Requirement: "{request.technical_spec.strip()}"\n'
            "   - Implement it strictly within the environment limitations above: "
            "declarative animation or standard DOM calls only, never custom script functions.\n"
        )
    return instruction


def build_task_segments(request: GenerationRequest) -> List[str]:
    """Assemble the ordered text segments of the task body."""
    segments: List[str] = []
    text = request.text.strip()

    if request.is_transform:
        source = (request.source_markup or "").strip()
        segments.append("CONTEXT: Transformation of existing material.\n")
        segments.append(
            "SOURCE SVG (THESIS):\n"
            f"{source or 'No source provided (create from scratch based on the goals).'}\n\n"
        )
        segments.append(f"TRANSFORMATION GOALS (ANTITHESIS):\n{text}\n")
    else:
        segments.append(f'OBJECT DESCRIPTION: "{text}"\n')

    style = (request.style_prompt or "").strip()
    if style:
        segments.append(f'VISUAL STYLE: "{style}"\n')
    elif not request.is_transform:
        segments.append(f"VISUAL STYLE: {DEFAULT_STYLE}\n")

    spec = (request.technical_spec or "").strip()
    if spec:
        segments.append(f'FUNCTIONAL/ANIMATION SPECS: "{spec}"\n')

    segments.append(_resolution_line(request.resolution))

    urls = request.cleaned_urls()
    if urls:
        segments.append(
            "\nREFERENCE CONTEXT/URLS:\n"
            + "\n".join(urls)
            + "\n(Use the information from these sources to inform the design and content.)\n"
        )

    action = "transformed" if request.is_transform else "new"
    segments.append(f"\nACTION: Generate the {action} SVG code now.")
    return segments


def _resolution_line(resolution: Resolution) -> str:
    return f"REQUIRED RESOLUTION: {resolution.width}x{resolution.height} pixels.\n"


REFINE_INSTRUCTION = f"""\
You are an SVG architect refining an existing drawing.
Preserve the strong elements of the current SVG while resolving what the user's critique points out.

Task:
1. Analyze the provided SVG code (thesis).
2. Apply the user's modification instruction (antithesis).
3. Produce the new SVG code (synthesis).

Constraints:
- Output ONLY the raw SVG code, no markdown fences, no prose.
- Keep the SVG syntax valid and keep the existing width, height and viewBox.
{_ENVIRONMENT_RULES}"""


def build_refine_segments(current_markup: str, instruction: str) -> List[str]:
    """Return the thesis / antithesis / synthesis segments of a refinement."""
    return [
        f"CURRENT SVG (THESIS):\n{current_markup}\n\n",
        f"MODIFICATION INSTRUCTION (ANTITHESIS):\n{instruction.strip()}\n\n",
        "ACTION: Generate the SYNTHESIS (new SVG code).",
    ]
