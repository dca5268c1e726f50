from __future__ import annotations

from typing import List


SYSTEM_INSTRUCTION = """
You are a master UI/UX engineer. Your goal is to generate high-fidelity, production-ready UI components using Tailwind CSS.
CRITICAL RULES:
1. ALWAYS use Tailwind 'dark:' utility classes to ensure the component looks great in both Light and Dark modes.
2. Use professional typography (Inter) and modern spacing.
3. Output ONLY the raw HTML/JSX-compatible code. No markdown code fences.
4. Ensure backgrounds use 'bg-white dark:bg-zinc-950' or similar to react to theme changes.
""".strip()

FALLBACK_DIRECTIONS: List[str] = ["Modern Minimal", "High-Tech Dark", "Organic Flow"]

INITIAL_PLACEHOLDERS: List[str] = [
    "a pricing card with three tiers",
    "a glassmorphism login form",
    "a music player with a waveform scrubber",
    "a kanban board column with draggable cards",
    "a weather widget for a smart fridge",
    "a notification center with grouped alerts",
    "a checkout summary with promo code input",
    "a profile card for a space explorer",
]


def fallback_directions(count: int) -> List[str]:
    if count <= len(FALLBACK_DIRECTIONS):
        return FALLBACK_DIRECTIONS[:count]
    extra = [f"Direction {i + 1}" for i in range(len(FALLBACK_DIRECTIONS), count)]
    return FALLBACK_DIRECTIONS + extra


def directions_prompt(user_prompt: str, count: int) -> str:
    return f'Generate {count} distinct creative names for UI directions for: "{user_prompt}". Return JSON array.'


def artifact_prompt(user_prompt: str, style_instruction: str) -> str:
    return (
        f'Create a high-fidelity HTML/CSS component for: "{user_prompt}". '
        f"Direction: {style_instruction}. "
        "IMPORTANT: Support both light and dark mode using Tailwind classes. NO MARKDOWN FENCES."
    )


def variations_prompt(user_prompt: str) -> str:
    return "\n".join(
        [
            f'Generate 3 RADICAL CONCEPTUAL VARIATIONS of: "{user_prompt}".',
            "Ensure all variations are fully adaptive to both Light and Dark modes using Tailwind classes.",
            "Required JSON Output Format (stream ONE object per line):",
            '`{ "name": "Persona Name", "html": "..." }`',
        ]
    )


SUGGESTIONS_PROMPT = (
    'Generate 20 creative, short, diverse UI component prompts (e.g. "bioluminescent task list"). '
    "Return ONLY a raw JSON array of strings. "
    "IP SAFEGUARD: Avoid referencing specific famous artists, movies, or brands."
)
