"""Response composer: conversational replies with suggested follow-ups."""

import logging
from typing import Any, Dict, List, Optional

from ..config import Settings, settings as default_settings
from ..exceptions import LanguageModelError
from ..models.conversation import EditContext
from ..models.intent import ActionKind, Intent
from ..models.responses import ComposedResponse, SuggestedAction
from ..tools.language_model import LanguageModelConnector
from ..utils.ai_output_logger import ai_logger
from .command_interpreter import extract_json_object
from .prompts import RESPONSE_SYSTEM_PROMPT, build_response_prompt


logger = logging.getLogger(__name__)


def _actions(*rows) -> List[SuggestedAction]:
    return [
        SuggestedAction(label=label, command=command, kind="primary" if i == 0 else "secondary")
        for i, (label, command) in enumerate(rows)
    ]


ACTION_TABLE: Dict[ActionKind, List[SuggestedAction]] = {
    ActionKind.BACKGROUND: _actions(
        ("Remove Background", "remove background"),
        ("Blur Background", "blur background"),
        ("Solid Color Background", "replace background with blue color"),
        ("Gradient Background", "add gradient background"),
    ),
    ActionKind.FILTER: _actions(
        ("Make Vintage", "apply vintage filter"),
        ("Black & White", "make it black and white"),
        ("Add Sepia", "apply sepia filter"),
        ("Slow Motion", "apply slow motion"),
    ),
    ActionKind.COLOR: _actions(
        ("Brighten Video", "make video brighter"),
        ("Increase Contrast", "increase contrast"),
        ("More Vivid", "make colors more vivid"),
    ),
    ActionKind.TEXT: _actions(
        ("Add Title", "add title \"My Video\""),
        ("Add Caption", "add caption \"Caption\""),
    ),
    ActionKind.TRIM: _actions(
        ("Cut Beginning", "trim first 10 seconds"),
        ("Keep Ending", "trim last 5 seconds"),
        ("Extract Clip", "extract from 30s to 60s"),
    ),
    ActionKind.CROP: _actions(
        ("Square Crop", "crop to square"),
        ("Custom Crop", "crop to 1280x720"),
    ),
    ActionKind.AUDIO: _actions(
        ("Remove Noise", "remove background noise"),
        ("Normalize Volume", "normalize audio volume"),
        ("Enhance Audio", "enhance audio quality"),
        ("Add Fade", "fade out the audio"),
    ),
    ActionKind.TRANSITION: _actions(
        ("Fade Transition", "add fade in and out"),
        ("Dissolve Effect", "add dissolve transition"),
    ),
    ActionKind.EXPORT: _actions(
        ("Export HD", "export video in 1080p"),
        ("Export WebM", "export as webm"),
    ),
}

DEFAULT_ACTIONS = _actions(
    ("Analyze Video", "analyze my video"),
    ("Export Video", "export video in HD"),
)

TIP_TABLE: Dict[ActionKind, List[str]] = {
    ActionKind.BACKGROUND: [
        "Use a green screen for the best background removal results",
        "Ensure good lighting for clean background separation",
        "Try different similarity values if edges look rough",
    ],
    ActionKind.FILTER: [
        "Filters can dramatically change the mood of your video",
        "Slow motion works great for action shots",
    ],
    ActionKind.COLOR: [
        "Small adjustments often work better than dramatic changes",
        "Consider the lighting conditions when adjusting colors",
    ],
    ActionKind.TEXT: [
        "Keep text readable by choosing contrasting colors",
        "Position text where it won't cover important content",
    ],
    ActionKind.TRIM: [
        "Use precise timestamps for accurate cuts",
        "Consider preserving audio when trimming",
    ],
    ActionKind.CROP: [
        "Center important subjects when cropping",
        "Consider final platform requirements (Instagram, YouTube)",
    ],
    ActionKind.AUDIO: [
        "Use noise reduction before other audio effects",
        "Add fade effects for smooth transitions",
    ],
    ActionKind.TRANSITION: [
        "Keep transitions short (0.5-2 seconds)",
        "Use dissolves for emotional content",
    ],
    ActionKind.EXPORT: [
        "WebM files are smaller but not every player supports them",
    ],
}

DEFAULT_TIPS = [
    "Use natural language to describe what you want to do",
    "Every edit creates a new version, so the original is never lost",
]

DEGRADED_MESSAGE = (
    "The AI assistant is running with reduced functionality right now. "
    "You can still edit your video with the quick actions below."
)

DEGRADED_ACTIONS = [
    SuggestedAction(label="Trim", command="trim first 10 seconds", kind="primary"),
    SuggestedAction(label="Apply Effect", command="apply vintage filter", kind="secondary"),
    SuggestedAction(label="Adjust Speed", command="speed up video 2x", kind="secondary"),
]

DEFAULT_MESSAGE = "I'm here to help with your video editing! What would you like to do?"


def suggested_actions_for(action: ActionKind) -> List[SuggestedAction]:
    return [a.model_copy() for a in ACTION_TABLE.get(action, DEFAULT_ACTIONS)]


def tips_for(action: ActionKind) -> List[str]:
    return list(TIP_TABLE.get(action, DEFAULT_TIPS))


def describe_outcome(outcome: Optional[Dict[str, Any]]) -> str:
    """One sentence about what happened to the request, for static replies."""
    if not outcome:
        return ""
    if outcome.get("success") and outcome.get("operation_id"):
        return f"Your {outcome.get('action', 'edit')} has started; it will take a moment."
    if outcome.get("message"):
        return str(outcome["message"])
    return ""


class ResponseComposer:
    """Builds the assistant's reply for a resolved intent."""

    def __init__(self, connector: LanguageModelConnector, settings: Optional[Settings] = None):
        self.connector = connector
        self.settings = settings or default_settings

    async def compose(
        self,
        intent: Intent,
        context: Optional[EditContext] = None,
        outcome: Optional[Dict[str, Any]] = None
    ) -> ComposedResponse:
        """Compose a reply. Never raises.

        Args:
            intent: Resolved intent
            context: Request context (media details, recent turns)
            outcome: Dispatch or analysis outcome, if any
        """
        context = context or EditContext()
        prompt = build_response_prompt(intent, context.to_prompt_dict(), outcome)

        try:
            raw_response = await self.connector.complete(prompt, {
                "system": RESPONSE_SYSTEM_PROMPT,
                "temperature": self.settings.response_temperature,
                "max_output_tokens": self.settings.response_max_tokens,
            })
        except LanguageModelError as e:
            logger.warning(f"Composing reduced-functionality reply ({type(e).__name__}): {e}")
            response = self.degraded_response(outcome)
            ai_logger.log_response(intent.action.value, response.model_dump(mode="json"), fallback=True)
            return response

        response = self.parse_response(raw_response, intent)
        ai_logger.log_response(
            intent.action.value, response.model_dump(mode="json"),
            prompt=prompt, raw_response=raw_response
        )
        return response

    def parse_response(self, raw_response: str, intent: Intent) -> ComposedResponse:
        """Use whatever the model got right, fill the rest from static tables."""
        data = extract_json_object(raw_response)
        if data is None:
            message = (raw_response or "").strip() or DEFAULT_MESSAGE
            return ComposedResponse(
                message=message,
                actions=suggested_actions_for(intent.action),
                tips=tips_for(intent.action),
            )

        message = data.get("message")
        if not isinstance(message, str) or not message.strip():
            message = DEFAULT_MESSAGE

        actions = self._parse_actions(data.get("actions")) or suggested_actions_for(intent.action)

        tips = data.get("tips")
        if isinstance(tips, list) and tips and all(isinstance(t, str) for t in tips):
            tips = list(tips)
        else:
            tips = tips_for(intent.action)

        return ComposedResponse(message=message.strip(), actions=actions, tips=tips)

    @staticmethod
    def _parse_actions(raw_actions: Any) -> List[SuggestedAction]:
        if not isinstance(raw_actions, list):
            return []
        actions = []
        for item in raw_actions:
            if not isinstance(item, dict) or not item.get("label") or not item.get("command"):
                continue
            actions.append(SuggestedAction(
                label=str(item["label"]),
                command=str(item["command"]),
                kind=item.get("kind", item.get("type", "secondary")),
            ))
        return actions

    @staticmethod
    def degraded_response(outcome: Optional[Dict[str, Any]] = None) -> ComposedResponse:
        """Static reply used when the language model is unavailable."""
        message = DEGRADED_MESSAGE
        status = describe_outcome(outcome)
        if status:
            message = f"{status} {message}"
        return ComposedResponse(
            message=message,
            actions=[a.model_copy() for a in DEGRADED_ACTIONS],
            tips=list(DEFAULT_TIPS),
            fallback=True,
        )
