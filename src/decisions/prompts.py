"""Prompt templates for the generation tier."""

from memory.models import MemoryRecord

MAX_MEMORY_CHARS = 300

CLARIFY_SYSTEM = """You are a planning coach. The user has stated a goal that may be vague.
Ask the 2-5 multiple-choice questions whose answers most change how the goal should be planned
(deadline, available time, current level, constraints). Use what you know about the user to skip
questions that are already answered.

Return JSON:
{
  "questions": [
    {"id": "unique_id", "prompt": "question text",
     "options": [{"value": "option_value", "label": "display text"}]}
  ]
}
Each question has 2-4 options."""

DECOMPOSE_SYSTEM = """You are a planning coach. Turn the user's goal into a SMART goal and a concrete plan.
Tasks must be small enough for one sitting. Match task energy to what you know about the user.

Return JSON:
{
  "goal": {
    "title": "concise goal title",
    "description": "one paragraph",
    "specific": "...", "measurable": "...", "achievable": "...",
    "relevant": "...", "time_bound": "...",
    "dimension": "one of health/career/family/finance/growth/social/hobby/self_realization"
  },
  "milestones": [
    {"title": "milestone", "deadline": "YYYY-MM-DD",
     "tasks": [{"title": "task", "estimated_duration": 30, "energy_level": "high/medium/low",
                "priority": 3}]}
  ]
}
Every milestone needs at least one task. estimated_duration is in minutes."""

ADJUST_SYSTEM = """You are an execution coach. A planned task was not completed.
Propose one adjustment that keeps the user moving without guilt.

adjustment_type must be one of:
- split: break the task into smaller tasks (include new_tasks)
- reschedule: move it to a better slot
- postpone: push it back by days_offset days
- cancel: drop it

Return JSON:
{
  "adjustment_type": "split|reschedule|postpone|cancel",
  "rationale": "why this helps",
  "options": [{"id": "opt_1", "label": "button text", "action": "split|reschedule|postpone|cancel"}],
  "new_tasks": [{"title": "smaller task", "estimated_duration": 15, "energy_level": "low"}],
  "days_offset": 1,
  "encouragement": "one short encouraging sentence"
}"""

INSIGHTS_SYSTEM = """You help the user see how their past relates to a goal.
From the memories given, write 1-3 short, specific insights (one sentence each).

Return JSON: {"insights": ["..."]}"""

EXTRACT_SYSTEM = """You extract structured information from a personal note.

Return JSON:
{
  "system_tags": ["self_awareness" | "growth_journey" | "goal_related" | "relationship"],
  "people": [], "dates": [], "skills": [], "traits": [],
  "emotions": [], "conclusions": [], "locations": []
}
Use empty lists when nothing applies."""


def format_memories(memories: list[MemoryRecord], max_items: int = 5) -> str:
    """Render memories as a bullet list for prompt context."""
    if not memories:
        return "(none)"
    lines = []
    for m in memories[:max_items]:
        text = m.text if len(m.text) <= MAX_MEMORY_CHARS else m.text[:MAX_MEMORY_CHARS] + "..."
        lines.append(f"- [{m.type.value}] {text}")
    return "\n".join(lines)


def clarify_messages(prompt: str, memories: list[MemoryRecord]) -> list[dict]:
    return [
        {"role": "system", "content": CLARIFY_SYSTEM},
        {
            "role": "user",
            "content": f"Goal: {prompt}\n\nWhat I know about the user:\n{format_memories(memories)}",
        },
    ]


def decompose_messages(prompt: str, answers: dict, memories: list[MemoryRecord]) -> list[dict]:
    answer_lines = "\n".join(f"- {k}: {v}" for k, v in answers.items()) or "(none)"
    return [
        {"role": "system", "content": DECOMPOSE_SYSTEM},
        {
            "role": "user",
            "content": (
                f"Goal: {prompt}\n\nClarifying answers:\n{answer_lines}\n\n"
                f"What I know about the user:\n{format_memories(memories)}"
            ),
        },
    ]


def adjust_messages(task_title: str, estimated_duration: int, reason_code: str, note: str) -> list[dict]:
    return [
        {"role": "system", "content": ADJUST_SYSTEM},
        {
            "role": "user",
            "content": (
                f"Task: {task_title} ({estimated_duration} min)\n"
                f"Reason: {reason_code}\n"
                f"User note: {note or '(none)'}"
            ),
        },
    ]


def insights_messages(goal_title: str, memories: list[MemoryRecord]) -> list[dict]:
    return [
        {"role": "system", "content": INSIGHTS_SYSTEM},
        {
            "role": "user",
            "content": f"Goal: {goal_title}\n\nMemories:\n{format_memories(memories)}",
        },
    ]


def extract_messages(text: str, memory_type: str) -> list[dict]:
    return [
        {"role": "system", "content": EXTRACT_SYSTEM},
        {"role": "user", "content": f"Note type: {memory_type}\n\n{text[:3000]}"},
    ]
