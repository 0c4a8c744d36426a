"""
Interaction planning: page snapshot in, bounded list of validated steps out.

Page analysis (type, authenticated flag, key elements, suggestions) is
local and deterministic; the plan itself comes from the reasoning
service as a JSON array.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from mk_common import PlanningError
from mk_config import PlannerConfig
from mk_models import (
    InteractionStep, InteractiveElement, PageAnalysis, PageSnapshot, SUPPORTED_INTERACTIONS,
)
from mk_reasoning import ReasoningService

logger = logging.getLogger(__name__)

LOGGED_IN_INDICATORS = (
    "dashboard", "admin", "app", "workspace", "console", "panel",
    "profile", "account", "settings", "preferences", "logout", "signout",
)

LOGIN_URL_MARKERS = ("login", "signin")

# Growth/acquisition vocabulary hidden from the planner once inside the app
SKIP_WHEN_AUTHENTICATED = (
    "waitlist", "join waitlist", "subscribe", "sign up", "signup",
    "get started", "try free", "free trial", "register",
)

ACTION_VERBS = ("submit", "save", "create", "delete", "edit", "view", "open", "manage", "configure")
NAVIGATION_WORDS = ("settings", "dashboard", "menu", "nav")

ELEMENT_SUGGESTIONS = (
    ("create", "Create new item"),
    ("search", "Perform search"),
    ("filter", "Apply filters"),
    ("manage", "Manage resources"),
    ("view", "View details"),
    ("edit", "Edit content"),
    ("configure", "Configure settings"),
    ("dashboard", "Access dashboard"),
    ("menu", "Navigate menu"),
)

JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def classify_page(snapshot: PageSnapshot) -> tuple:
    """Return (page_type, is_authenticated)."""
    url = (snapshot.url or "").lower()

    if any(marker in url for marker in LOGIN_URL_MARKERS):
        return "login", False

    has_logged_in_text = any(
        indicator in el.visible_text.lower()
        for el in snapshot.elements
        for indicator in LOGGED_IN_INDICATORS
    )
    has_logged_in_url = any(indicator in url for indicator in LOGGED_IN_INDICATORS)
    authenticated = has_logged_in_text or has_logged_in_url

    if "dashboard" in url or "admin" in url or "app" in url:
        return "dashboard", True
    if "profile" in url or "account" in url:
        return "profile", True
    if "settings" in url:
        return "settings", True
    if authenticated:
        return "authenticated", True
    return "general", False


def _is_action_element(el: InteractiveElement) -> bool:
    text = el.visible_text.lower()
    return el.input_type == "submit" or any(verb in text for verb in ACTION_VERBS)


def select_key_elements(elements, authenticated: bool) -> List[InteractiveElement]:
    """Important elements, action verbs and submit controls first."""
    selected = []
    for el in elements:
        text = el.visible_text.lower()

        if authenticated and any(pattern in text for pattern in SKIP_WHEN_AUTHENTICATED):
            continue

        important = (
            el.tag == "button"
            or _is_action_element(el)
            or any(word in text for word in NAVIGATION_WORDS)
            or (not authenticated and ("login" in text or "signup" in text))
        )
        if important:
            selected.append(el)

    # Stable: keeps snapshot order within each group
    return sorted(selected, key=lambda el: 0 if _is_action_element(el) else 1)


def suggest_actions(page_type: str, key_elements, authenticated: bool) -> List[str]:
    suggestions: List[str] = []

    if authenticated:
        if page_type in ("dashboard", "authenticated"):
            suggestions += ["Navigate main features", "Explore dashboard sections",
                            "Access core functionality", "View data and analytics"]
        elif page_type == "profile":
            suggestions += ["Edit profile information", "Update account settings", "Manage preferences"]
        elif page_type == "settings":
            suggestions += ["Configure application settings", "Update preferences", "Manage account options"]
        else:
            suggestions += ["Explore app features", "Navigate interface", "Demonstrate core functionality"]
    elif page_type == "login":
        suggestions += ["Fill login form", "Submit credentials"]
    else:
        suggestions += ["Explore navigation", "Interact with content", "Demonstrate features"]

    for el in key_elements:
        text = el.visible_text.lower()
        for word, suggestion in ELEMENT_SUGGESTIONS:
            if word in text:
                suggestions.append(suggestion)

    return list(dict.fromkeys(suggestions))


def analyze_page(snapshot: PageSnapshot) -> PageAnalysis:
    page_type, authenticated = classify_page(snapshot)
    key_elements = select_key_elements(snapshot.elements, authenticated)
    return PageAnalysis(
        page_type=page_type,
        is_authenticated=authenticated,
        key_elements=key_elements,
        suggested_actions=suggest_actions(page_type, key_elements, authenticated),
        element_count=len(snapshot.elements),
    )


def build_system_prompt(max_interactions: int) -> str:
    return f"""You are an AI that creates demo interactions for websites. Generate a JSON array of interactions that would showcase the website's features effectively. Each interaction should have: type, selector, description, reasoning, and duration (in milliseconds).

Supported interaction types: {', '.join(SUPPORTED_INTERACTIONS)}

IMPORTANT RULES:
1. If the user appears to be logged in (dashboard, app interface, authenticated pages), focus on demonstrating ACTUAL APP FEATURES, not signup/waitlist actions
2. Avoid "Subscribe to waitlist", "Join waitlist", "Sign up" buttons if the user is already in the app
3. Prioritize functional interactions that show what the app actually does
4. Look for navigation menus, feature buttons, data displays, settings, and core functionality
5. Create a logical flow that demonstrates the app's value proposition

Focus on the most important and demonstrative actions. Limit to {max_interactions} interactions maximum."""


def build_planning_prompt(snapshot: PageSnapshot, analysis: PageAnalysis) -> str:
    status = "LOGGED IN (authenticated user)" if analysis.is_authenticated else "NOT LOGGED IN (visitor)"
    elements = "\n".join(el.describe() for el in analysis.key_elements)

    if analysis.is_authenticated:
        instructions = (
            "- The user is LOGGED IN, so focus on demonstrating ACTUAL APP FEATURES\n"
            "- Avoid signup/waitlist/registration actions since the user is already authenticated\n"
            "- Prioritize functional interactions that show the app's core value proposition\n"
            "- Look for navigation menus, feature buttons, data displays, settings, and tools\n"
            "- Create a logical flow that demonstrates what the app actually does for users"
        )
    else:
        instructions = (
            "- The user is NOT LOGGED IN, so focus on exploration and authentication if needed\n"
            "- You may include signup/login actions if they lead to demonstrating app features\n"
            "- Focus on showcasing the app's value proposition to encourage signup"
        )

    return f"""Analyze this webpage and create a demo interaction plan:

URL: {snapshot.url}
Title: {snapshot.title}
Page Type: {analysis.page_type}
User Status: {status}

Available Interactive Elements:
{elements}

Suggested Actions: {', '.join(analysis.suggested_actions)}

IMPORTANT INSTRUCTIONS:
{instructions}

Create a logical sequence of interactions that would effectively demonstrate this website's functionality. Each interaction should be meaningful and showcase key features.

Return a JSON array with this format:
[
  {{
    "type": "click|type|hover|scroll|wait",
    "selector": "css-selector",
    "text": "text-to-type (only for type interactions)",
    "description": "Human-readable description",
    "reasoning": "Why this interaction is valuable",
    "duration": 3000
  }}
]
"""


def parse_plan_response(content: str) -> List[Any]:
    """JSON array from the response, or the first bracketed array inside it."""
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Failed to parse AI response as JSON, extracting array")
        match = JSON_ARRAY_RE.search(content or "")
        if not match:
            raise PlanningError("Invalid AI response format")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise PlanningError(f"Invalid AI response format: {e}")

    if isinstance(data, dict):
        for key in ("steps", "interactions"):
            if isinstance(data.get(key), list):
                return data[key]
    if not isinstance(data, list):
        raise PlanningError("Invalid AI response format: expected a JSON array")
    return data


def validate_step(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    kind = InteractionStep.kind_of(raw)
    if not kind or not raw.get("selector") or not raw.get("description"):
        return False
    if kind not in SUPPORTED_INTERACTIONS:
        return False
    if kind == "type" and not (isinstance(raw.get("text"), str) and raw["text"]):
        return False
    return True


class InteractionPlanner:
    def __init__(self, reasoning: ReasoningService, config: Optional[PlannerConfig] = None):
        self.reasoning = reasoning
        self.config = config or PlannerConfig()

    async def plan(self, snapshot: PageSnapshot) -> List[InteractionStep]:
        logger.info("Planning interactions using AI")
        analysis = analyze_page(snapshot)
        logger.debug(
            f"Page analysis completed: type={analysis.page_type} "
            f"authenticated={analysis.is_authenticated} key_elements={len(analysis.key_elements)}"
        )

        try:
            content = await self.reasoning.complete(
                system=build_system_prompt(self.config.max_interactions),
                user=build_planning_prompt(snapshot, analysis),
                temperature=self.config.plan_temperature,
                max_tokens=self.config.plan_max_tokens,
            )
        except Exception as e:
            raise PlanningError(f"Failed to generate interaction plan: {e}") from e

        raw_steps = parse_plan_response(content)
        valid: List[Dict[str, Any]] = [s for s in raw_steps if validate_step(s)]
        dropped = len(raw_steps) - len(valid)
        if dropped:
            logger.debug(f"Dropped {dropped} invalid planned steps")

        steps = [InteractionStep.from_dict(s) for s in valid[: self.config.max_interactions]]
        logger.info(f"Interaction plan generated: {len(steps)} steps (max {self.config.max_interactions})")
        return steps
