# Prompt templates for the AI gateway.
# Categories: Work, Personal, Urgent, Learning, Health
# Structured answers (subtasks, priority order) are requested as a bare JSON array of strings.

CATEGORIZE_PROMPT = """Classify the task "{text}" into one of these categories: {categories}.

Return only the category name, no other text."""

SUBTASKS_PROMPT = """Break down the following task into 3 to 5 actionable subtasks: "{text}".

Keep them concise.

Respond with a JSON array of strings only, for example:
["First step", "Second step", "Third step"]

Only respond with valid JSON, no other text."""

PRIORITIZE_PROMPT = """You are a productivity expert. Reorder the following tasks by priority (Urgency > Work > Health > Others).

Tasks:
{tasks}

Respond with a JSON array containing ONLY the task ids, in the optimized order, for example:
["id-1", "id-2"]

Only respond with valid JSON, no other text."""
