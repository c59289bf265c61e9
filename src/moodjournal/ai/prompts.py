"""Prompt templates and response parsers for the journaling features.

This module is the single source of the prompts sent to Gemini and of the
code that turns completions back into structured values. Everything here is
pure: no network, no logging of user text.

Templates:
- diary_analysis_v1: supportive reflection on a diary entry (free text out)
- motivation_v1: short daily motivation message (free text out)
- task_suggestions_v1: 3-5 small tasks, one per line
- mood_analysis_v1: mood / sentiment / suggestions as a JSON object

Example:
    >>> prompt = DIARY_ANALYSIS_PROMPT.render(diary_text="Long day, but I went running.")
    >>> parse_task_suggestions("1. Walk\\n2. Read")
    ['Walk', 'Read']
"""

from __future__ import annotations

import json
import re
import textwrap
from dataclasses import dataclass, field
from string import Template
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

MAX_TASK_SUGGESTIONS = 5


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class PromptTemplate:
    """A prompt with ``$placeholder`` variables.

    Attributes:
        id: Unique identifier (e.g., "mood_analysis_v1").
        template: Prompt body using string.Template syntax.
        required_variables: Variables that MUST be provided.
        description: What the prompt is for.
    """

    id: str
    template: str
    required_variables: set[str] = field(default_factory=set)
    description: str = ""

    def render(self, **variables: Any) -> str:
        """Substitute variables into the template.

        Raises:
            ValueError: If required variables are missing.
        """
        missing = sorted(self.required_variables - set(variables))
        if missing:
            raise ValueError(f"Missing required variables for prompt '{self.id}': {missing}")
        rendered = Template(self.template).safe_substitute(variables)
        # Optional lines left empty collapse away
        return re.sub(r"\n{3,}", "\n\n", rendered).strip()


class MoodAnalysis(BaseModel):
    """Structured mood reading of a diary entry.

    Exactly these three fields; anything else is a parse failure.
    """

    model_config = ConfigDict(extra="forbid")

    mood: str
    sentiment: Literal["positive", "neutral", "negative"]
    suggestions: list[str]


def neutral_mood() -> MoodAnalysis:
    """Fallback used when the mood response cannot be parsed."""
    return MoodAnalysis(mood="unspecified", sentiment="neutral", suggestions=[])


# =============================================================================
# Templates
# =============================================================================


DIARY_ANALYSIS_PROMPT = PromptTemplate(
    id="diary_analysis_v1",
    description="Warm, supportive reflection on a diary entry.",
    required_variables={"diary_text"},
    template=textwrap.dedent(
        """
        You are a psychologist and life coach. Analyse the diary entry below and give the writer:
        1. An assessment of their mood
        2. The positive points worth highlighting
        3. Suggestions for improvement
        4. A motivating closing message

        Diary entry:
        $diary_text

        Use a sincere, warm and supportive tone.
        """
    ),
)


MOTIVATION_PROMPT = PromptTemplate(
    id="motivation_v1",
    description="Short personal motivation message for today.",
    template=textwrap.dedent(
        """
        Write a personal, sincere motivation message for today.
        $mood_line
        $tasks_line

        Keep the message short, inspiring and empowering.
        """
    ),
)


TASK_SUGGESTIONS_PROMPT = PromptTemplate(
    id="task_suggestions_v1",
    description="Three to five small tasks for today, one per line.",
    template=textwrap.dedent(
        """
        Suggest 3-5 tasks the user could do today.
        $goals_line

        Keep every task short and clear. List only the tasks, one per line, with no other explanation.
        """
    ),
)


MOOD_ANALYSIS_PROMPT = PromptTemplate(
    id="mood_analysis_v1",
    description="Mood, sentiment and suggestions as a JSON object.",
    required_variables={"diary_text"},
    template=textwrap.dedent(
        """
        Analyse the diary entry below and answer in JSON format:
        {
          "mood": "mood in a word or two (e.g. happy, anxious, calm)",
          "sentiment": "positive | neutral | negative",
          "suggestions": ["suggestion1", "suggestion2", "suggestion3"]
        }

        Diary entry:
        $diary_text

        Return only the JSON, with no other explanation.
        """
    ),
)


# =============================================================================
# Builders
# =============================================================================


def build_diary_analysis_prompt(diary_text: str) -> str:
    return DIARY_ANALYSIS_PROMPT.render(diary_text=diary_text.strip())


def build_motivation_prompt(user_mood: str | None = None, completed_tasks: int | None = None) -> str:
    mood_line = f"The user's mood: {user_mood.strip()}" if user_mood and user_mood.strip() else ""
    tasks_line = (
        f"Number of tasks completed today: {completed_tasks}" if completed_tasks is not None else ""
    )
    return MOTIVATION_PROMPT.render(mood_line=mood_line, tasks_line=tasks_line)


def build_task_suggestions_prompt(user_goals: list[str] | None = None) -> str:
    goals = [g.strip() for g in user_goals or [] if g and g.strip()]
    goals_line = f"The user's goals: {', '.join(goals)}" if goals else ""
    return TASK_SUGGESTIONS_PROMPT.render(goals_line=goals_line)


def build_mood_analysis_prompt(diary_text: str) -> str:
    return MOOD_ANALYSIS_PROMPT.render(diary_text=diary_text.strip())


# =============================================================================
# Parsers
# =============================================================================


# "1.", "2)", "-", "*", "•" at the start of a line, followed by whitespace or end of line
_LIST_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])(?=\s|$)\s*")

# First "{" through the last "}"
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_task_suggestions(text: str, limit: int = MAX_TASK_SUGGESTIONS) -> list[str]:
    """Turn a one-task-per-line completion into a list.

    Blank lines and lines that are only a list marker are dropped; leading
    markers are stripped; at most ``limit`` entries are kept.
    """
    tasks: list[str] = []
    for line in text.splitlines():
        task = _LIST_MARKER.sub("", line, count=1).strip()
        if not task:
            continue
        tasks.append(task)
        if len(tasks) >= limit:
            break
    return tasks


def parse_mood_analysis(text: str) -> MoodAnalysis | None:
    """Extract and validate the mood JSON object from a completion.

    Returns:
        MoodAnalysis, or None when no object is found, the JSON is invalid,
        or the object does not have exactly the expected fields.
    """
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return MoodAnalysis.model_validate(data)
    except ValidationError:
        return None
