"""Command interpreter: free text to a structured Intent."""

import json
import logging
import math
import re
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, settings as default_settings
from ..exceptions import LanguageModelError, ValidationError
from ..models.conversation import EditContext
from ..models.intent import ActionKind, Intent, EDIT_ACTIONS
from ..models.parameters import validate_parameters
from ..tools.language_model import LanguageModelConnector
from ..utils.ai_output_logger import ai_logger
from .prompts import build_intent_system_prompt, build_intent_prompt


logger = logging.getLogger(__name__)


FALLBACK_CONFIDENCE_EXTRACTED = 0.7
FALLBACK_CONFIDENCE_DEFAULT = 0.6

NUMBER = r'(\d+(?:\.\d+)?)'
SECONDS = r'\s*(?:s|sec|secs|second|seconds)?\b'


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Pull the first JSON object out of a model reply.

    Tolerates code fences and prose around the object. Returns None if no
    object can be decoded.
    """
    if not text:
        return None
    json_start = text.find('{')
    json_end = text.rfind('}') + 1
    if json_start == -1 or json_end <= json_start:
        return None
    try:
        data = json.loads(text[json_start:json_end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _parse_time(value: str) -> float:
    """'90', '1:30' or '1.5' to seconds."""
    if ':' in value:
        minutes, seconds = value.split(':', 1)
        return int(minutes) * 60 + float(seconds)
    return float(value)


# Parameter extractors: return parameters found in the text, or None

def _extract_trim(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    time = r'(\d+:\d{1,2}|\d+(?:\.\d+)?)'
    match = re.search(rf'from\s+{time}{SECONDS}\s*(?:to|-|until)\s*{time}', text)
    if match:
        start, end = _parse_time(match.group(1)), _parse_time(match.group(2))
        if end > start:
            return {"startTime": start, "endTime": end}

    match = re.search(rf'first\s+{NUMBER}{SECONDS}', text)
    if match:
        return {"startTime": 0, "duration": float(match.group(1))}

    match = re.search(rf'last\s+{NUMBER}{SECONDS}', text)
    if match and context.duration:
        length = min(float(match.group(1)), context.duration)
        return {"startTime": context.duration - length, "duration": length}

    match = re.search(rf'(?:to|down to)\s+{NUMBER}{SECONDS}', text)
    if match:
        return {"startTime": 0, "duration": float(match.group(1))}
    return None


def _extract_speed(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    match = re.search(rf'{NUMBER}\s*x\b', text)
    if match:
        return {"filterType": "speed", "intensity": float(match.group(1))}
    return None


def _extract_crop(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    match = re.search(r'(\d{2,5})\s*[x×]\s*(\d{2,5})', text)
    if match:
        return {"width": int(match.group(1)), "height": int(match.group(2))}
    if "square" in text and context.width and context.height:
        side = min(context.width, context.height)
        return {
            "x": (context.width - side) // 2,
            "y": (context.height - side) // 2,
            "width": side,
            "height": side,
        }
    return None


def _extract_audio(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    if re.search(r'\bfade[\s-]?in\b', text):
        return {"operation": "fadeIn"}
    if re.search(r'\bfade[\s-]?out\b', text):
        return {"operation": "fadeOut"}
    if re.search(r'\b(noise|denoise|hiss|clean)', text):
        return {"operation": "denoise"}
    if re.search(r'\bnormali[sz]e', text):
        return {"operation": "normalize"}
    match = re.search(rf'volume\s+(?:to\s+)?{NUMBER}\s*%', text)
    if match:
        return {"operation": "volume", "volume": float(match.group(1)) / 100}
    if re.search(r'\blouder\b', text):
        return {"operation": "volume", "volume": 1.5}
    if re.search(r'\b(quieter|softer)\b', text):
        return {"operation": "volume", "volume": 0.5}
    return None


COLOR_NAMES = {
    "black": "#000000",
    "white": "#FFFFFF",
    "red": "#FF0000",
    "blue": "#0000FF",
    "green": "#00FF00",
    "gray": "#808080",
    "grey": "#808080",
}


def _extract_background(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    if re.search(r'\bblur', text):
        return {"action": "replace", "backgroundType": "blur"}
    if "gradient" in text:
        return {"action": "replace", "backgroundType": "gradient"}
    for name, value in COLOR_NAMES.items():
        if re.search(rf'\b{name}\b', text) and not re.search(rf'\b{name} screen\b', text):
            return {"action": "replace", "backgroundType": "solid", "backgroundColor": value}
    return None


def _extract_transition(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    params: Dict[str, Any] = {}
    if "dissolve" in text:
        params["type"] = "dissolve"
    if re.search(r'in and out|both', text):
        params["position"] = "both"
    elif re.search(r'\b(out|end)\b', text):
        params["position"] = "end"
    match = re.search(rf'{NUMBER}{SECONDS}', text)
    if match and 0 < float(match.group(1)) <= 10:
        params["duration"] = float(match.group(1))
    return params or None


def _extract_color(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    params: Dict[str, Any] = {}
    if re.search(r'\b(bright|brighten|brighter|lighter)\b', text):
        params["brightness"] = 0.2
    elif re.search(r'\b(dark|darken|darker|dimmer)\b', text):
        params["brightness"] = -0.2
    if re.search(r'\bless contrast\b', text):
        params["contrast"] = 0.8
    elif "contrast" in text:
        params["contrast"] = 1.3
    if re.search(r'\b(desaturate|less saturat\w*|muted)\b', text):
        params["saturation"] = 0.7
    elif re.search(r'\b(saturat\w*|vibrant|vivid)\b', text):
        params["saturation"] = 1.3
    return params or None


def _extract_text(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    match = re.search(r'["“\'](.+?)["”\']', text)
    if match and match.group(1).strip():
        return {"text": match.group(1).strip()}
    return None


RESOLUTIONS = {"2160p": "3840x2160", "4k": "3840x2160", "1080p": "1920x1080", "720p": "1280x720", "480p": "854x480"}


def _extract_export(text: str, context: EditContext) -> Optional[Dict[str, Any]]:
    params: Dict[str, Any] = {}
    for fmt in ("webm", "mov", "mp4"):
        if fmt in text:
            params["format"] = fmt
            break
    if re.search(r'\b(low quality|small)\b', text):
        params["quality"] = "low"
    elif "medium" in text:
        params["quality"] = "medium"
    for key, value in RESOLUTIONS.items():
        if key in text:
            params["resolution"] = value
            break
    return params or None


class KeywordRule(NamedTuple):
    pattern: "re.Pattern"
    action: ActionKind
    defaults: Dict[str, Any]
    extractor: Optional[Callable[[str, EditContext], Optional[Dict[str, Any]]]] = None


def _rule(pattern, action, defaults, extractor=None) -> KeywordRule:
    return KeywordRule(re.compile(pattern), action, defaults, extractor)


# First matching row wins
KEYWORD_RULES: List[KeywordRule] = [
    _rule(r'\b(slow[\s-]?mo(tion)?|slow down|slower)\b', ActionKind.FILTER,
          {"filterType": "speed", "intensity": 0.5}, _extract_speed),
    _rule(r'\b(speed up|faster|fast forward|time[\s-]?lapse|speed)\b', ActionKind.FILTER,
          {"filterType": "speed", "intensity": 2.0}, _extract_speed),
    _rule(r'\b(trim|cut|shorten|extract)\b', ActionKind.TRIM,
          {"startTime": 0, "duration": 30}, _extract_trim),
    _rule(r'\b(crop|aspect ratio)\b', ActionKind.CROP,
          {"x": 0, "y": 0, "width": 640, "height": 360}, _extract_crop),
    _rule(r'\b(noise|denoise|volume|louder|quieter|audio|sound|normali[sz]e)\b', ActionKind.AUDIO,
          {"operation": "enhance"}, _extract_audio),
    _rule(r'\b(background|green screen|chroma[\s-]?key)\b', ActionKind.BACKGROUND,
          {"action": "remove"}, _extract_background),
    _rule(r'\b(fade|dissolve|transition|crossfade)\b', ActionKind.TRANSITION,
          {"type": "fade", "position": "start"}, _extract_transition),
    _rule(r'\b(vintage|old film|retro)\b', ActionKind.FILTER, {"filterType": "vintage"}),
    _rule(r'\b(black (and|&) white|monochrome|gr[ae]yscale)\b', ActionKind.FILTER, {"filterType": "black_white"}),
    _rule(r'\bsepia\b', ActionKind.FILTER, {"filterType": "sepia"}),
    _rule(r'\b(sharpen|sharper|crisp)\b', ActionKind.FILTER, {"filterType": "sharpen"}),
    _rule(r'\b(blur|blurry)\b', ActionKind.FILTER, {"filterType": "blur"}),
    _rule(r'\b(effect|filter)\b', ActionKind.FILTER, {"filterType": "blur"}),
    _rule(r'\b(bright\w*|lighter|dark\w*|dimmer|contrast|saturat\w*|vibrant|vivid|colou?rs?|colou?r grade)\b',
          ActionKind.COLOR, {"brightness": 0.1, "contrast": 1.1}, _extract_color),
    _rule(r'\b(title|caption|text|subtitle|watermark)\b', ActionKind.TEXT,
          {"text": "Title"}, _extract_text),
    _rule(r'\b(export|download|save as)\b', ActionKind.EXPORT,
          {"format": "mp4", "quality": "high"}, _extract_export),
    _rule(r"\b(analy[sz]e|describe|how long)\b|\bwhat(?:'s| is) (?:in )?(?:this|my|the) video\b",
          ActionKind.ANALYZE, {}),
]


class CommandInterpreter:
    """Turns a user message into an Intent.

    The language model is the primary path. When it cannot be used (missing
    key, quota, timeout, outage) a keyword table gives a lower-confidence
    answer so simple edits keep working.
    """

    def __init__(self, connector: LanguageModelConnector, settings: Optional[Settings] = None):
        self.connector = connector
        self.settings = settings or default_settings
        self.system_prompt = build_intent_system_prompt()
        self.rules = KEYWORD_RULES

    async def resolve_intent(self, message: str, context: Optional[EditContext] = None) -> Intent:
        """Resolve ``message`` into an Intent. Never raises."""
        context = context or EditContext()
        prompt = build_intent_prompt(message, context.to_prompt_dict())

        try:
            raw_response = await self.connector.complete(prompt, {
                "system": self.system_prompt,
                "temperature": self.settings.intent_temperature,
                "max_output_tokens": self.settings.intent_max_tokens,
                "json": True,
            })
        except LanguageModelError as e:
            logger.warning(f"Language model unavailable ({type(e).__name__}), using keyword fallback: {e}")
            intent = self.keyword_intent(message, context)
            ai_logger.log_intent_resolution(
                message, intent.model_dump(mode="json"), fallback=True, error=str(e)
            )
            return intent

        intent = self.parse_intent(raw_response)
        ai_logger.log_intent_resolution(
            message, intent.model_dump(mode="json"), prompt=prompt, raw_response=raw_response
        )
        logger.info(f"Resolved '{message[:60]}' to {intent.action.value} (confidence {intent.confidence:.2f})")
        return intent

    def parse_intent(self, raw_response: str) -> Intent:
        """Build an Intent from a model reply; unusable replies are ambiguous."""
        data = extract_json_object(raw_response)
        if data is None:
            logger.warning("Model reply contained no JSON object")
            return Intent.ambiguous()

        action = ActionKind.from_string(data.get("action"))
        parameters = data.get("parameters") or {}
        if not isinstance(parameters, dict):
            logger.warning(f"Model returned non-object parameters: {parameters!r}")
            return Intent.ambiguous()

        if action in EDIT_ACTIONS:
            try:
                parameters = validate_parameters(action, parameters)
            except ValidationError as e:
                logger.warning(f"Model parameters rejected: {e}")
                return Intent.ambiguous()

        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError, OverflowError):
            confidence = 0.5
        if not math.isfinite(confidence):
            confidence = 0.5
        confidence = min(max(confidence, 0.0), 1.0)

        suggestions = data.get("suggestedActions", data.get("suggested_actions"))
        try:
            return Intent(
                action=action,
                parameters=parameters,
                confidence=confidence,
                explanation=str(data.get("explanation") or ""),
                suggested_actions=suggestions,
            )
        except PydanticValidationError as e:
            logger.warning(f"Model reply did not form a valid intent: {e}")
            return Intent.ambiguous()

    def keyword_intent(self, message: str, context: Optional[EditContext] = None) -> Intent:
        """Deterministic keyword fallback. The first matching rule wins."""
        context = context or EditContext()
        text = message.lower()

        for rule in self.rules:
            if not rule.pattern.search(text):
                continue

            parameters = dict(rule.defaults)
            confidence = FALLBACK_CONFIDENCE_DEFAULT
            extracted = rule.extractor(text, context) if rule.extractor else None
            if extracted:
                # Row defaults are dropped; schema defaults fill what the text left out
                parameters = dict(extracted)
                confidence = FALLBACK_CONFIDENCE_EXTRACTED

            if rule.action in EDIT_ACTIONS:
                try:
                    parameters = validate_parameters(rule.action, parameters)
                except ValidationError as e:
                    logger.debug(f"Extracted parameters invalid ({e}), using defaults")
                    parameters = validate_parameters(rule.action, rule.defaults)
                    confidence = FALLBACK_CONFIDENCE_DEFAULT

            return Intent(
                action=rule.action,
                parameters=parameters,
                confidence=confidence,
                explanation=f"Keyword match for {rule.action.value}",
                fallback=True,
            )

        return Intent(
            action=ActionKind.CHAT,
            parameters={},
            confidence=0.3,
            explanation="No keyword matched",
            fallback=True,
        )
