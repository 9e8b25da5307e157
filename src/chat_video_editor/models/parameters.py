"""
Per-action parameter schemas.

Every edit action has one schema. Keys use the camelCase names the language
model is asked to produce; unknown keys are dropped. Validation happens right
after intent parsing and again before an Operation is created.
"""

import re
from typing import Any, Dict, List, Literal, Optional, Type, get_args, get_origin

from pydantic import BaseModel, Field, model_validator, validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from .intent import ActionKind


HEX_COLOR = re.compile(r'^#[0-9a-fA-F]{6}$')
RESOLUTION = re.compile(r'^\d{2,5}x\d{2,5}$')

FilterType = Literal["vintage", "black_white", "sepia", "blur", "sharpen", "speed"]
AudioOperation = Literal["enhance", "denoise", "normalize", "volume", "fadeIn", "fadeOut"]


class ActionParameters(BaseModel):
    """Base class for parameter schemas."""

    class Config:
        populate_by_name = True
        extra = "ignore"


class TrimParameters(ActionParameters):
    """Cut a segment out of the source."""
    start_time: float = Field(0.0, ge=0, alias="startTime", description="Segment start in seconds")
    end_time: Optional[float] = Field(None, gt=0, alias="endTime", description="Segment end in seconds")
    duration: Optional[float] = Field(None, gt=0, description="Segment length in seconds")
    preserve_audio: bool = Field(True, alias="preserveAudio", description="Keep the audio track")

    @model_validator(mode="after")
    def check_extent(self):
        if self.end_time is None and self.duration is None:
            raise ValueError("one of endTime or duration is required")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("endTime must be greater than startTime")
        return self


class CropParameters(ActionParameters):
    """Crop a rectangle out of every frame."""
    x: int = Field(0, ge=0, description="Left edge in pixels")
    y: int = Field(0, ge=0, description="Top edge in pixels")
    width: int = Field(..., gt=0, description="Crop width in pixels")
    height: int = Field(..., gt=0, description="Crop height in pixels")


class FilterParameters(ActionParameters):
    """Apply a visual filter; 'speed' uses intensity as the speed factor."""
    filter_type: FilterType = Field(..., alias="filterType", description="Filter to apply")
    intensity: float = Field(1.0, gt=0, le=10, description="Filter strength (speed factor for 'speed')")


class ColorParameters(ActionParameters):
    """Colour correction."""
    brightness: float = Field(0.0, ge=-1, le=1, description="Brightness offset")
    contrast: float = Field(1.0, ge=0, le=3, description="Contrast multiplier")
    saturation: float = Field(1.0, ge=0, le=3, description="Saturation multiplier")
    hue: float = Field(0.0, ge=-180, le=180, description="Hue rotation in degrees")
    gamma: float = Field(1.0, ge=0.1, le=10, description="Gamma correction")


class AudioParameters(ActionParameters):
    """Audio enhancement."""
    operation: AudioOperation = Field(..., description="Audio operation")
    volume: float = Field(1.0, ge=0, le=5, description="Volume multiplier")
    duration: float = Field(1.0, gt=0, description="Fade length in seconds")


class TextParameters(ActionParameters):
    """Text overlay."""
    text: str = Field(..., min_length=1, description="Text to draw")
    x: int = Field(10, ge=0, description="Left position in pixels")
    y: int = Field(10, ge=0, description="Top position in pixels")
    font_size: int = Field(24, gt=0, alias="fontSize", description="Font size")
    color: str = Field("white", description="Text colour name or #RRGGBB")
    font_family: Optional[str] = Field(None, alias="fontFamily", description="Font name")
    start_time: float = Field(0.0, ge=0, alias="startTime", description="When the text appears")
    duration: float = Field(5.0, gt=0, description="How long the text stays")


class TransitionParameters(ActionParameters):
    """Fade the clip in or out."""
    type: Literal["fade", "dissolve"] = Field("fade", description="Transition style")
    duration: float = Field(1.0, gt=0, le=10, description="Transition length in seconds")
    position: Literal["start", "end", "both"] = Field("start", description="Where the transition goes")


class BackgroundParameters(ActionParameters):
    """Chroma-key background removal or replacement."""
    action: Literal["remove", "replace"] = Field("remove", description="Remove or replace the background")
    background_type: Literal["solid", "image", "blur", "gradient"] = Field(
        "solid", alias="backgroundType", description="Replacement background kind"
    )
    background_image: Optional[str] = Field(None, alias="backgroundImage", description="Path to background image")
    background_color: str = Field("#000000", alias="backgroundColor", description="Solid background colour")
    gradient_colors: List[str] = Field(
        default_factory=lambda: ["#000000", "#333333"], alias="gradientColors", description="Two gradient colours"
    )
    blur_radius: float = Field(10.0, gt=0, alias="blurRadius", description="Blur radius for blurred backgrounds")
    color: str = Field("#00FF00", description="Key colour to remove")
    similarity: float = Field(0.1, ge=0, le=1, description="Key colour tolerance")
    blend: float = Field(0.2, ge=0, le=1, description="Edge softness")

    @validator('background_color', 'color')
    def validate_hex(cls, v):
        if not HEX_COLOR.match(v):
            raise ValueError('colour must look like #RRGGBB')
        return v

    @validator('gradient_colors')
    def validate_gradient(cls, v):
        if len(v) != 2 or not all(HEX_COLOR.match(c) for c in v):
            raise ValueError('gradientColors must be two #RRGGBB colours')
        return v

    @model_validator(mode="after")
    def check_image(self):
        if self.action == "replace" and self.background_type == "image" and not self.background_image:
            raise ValueError("backgroundImage is required for image backgrounds")
        return self


class ExportParameters(ActionParameters):
    """Re-encode to a delivery format."""
    format: Literal["mp4", "webm", "mov"] = Field("mp4", description="Container format")
    quality: Literal["high", "medium", "low"] = Field("high", description="Bitrate preset")
    resolution: Optional[str] = Field(None, description="Output size as WIDTHxHEIGHT")

    @validator('resolution')
    def validate_resolution(cls, v):
        if v is not None and not RESOLUTION.match(v):
            raise ValueError('resolution must look like 1280x720')
        return v


PARAMETER_SCHEMAS: Dict[ActionKind, Type[ActionParameters]] = {
    ActionKind.TRIM: TrimParameters,
    ActionKind.CROP: CropParameters,
    ActionKind.FILTER: FilterParameters,
    ActionKind.COLOR: ColorParameters,
    ActionKind.AUDIO: AudioParameters,
    ActionKind.TEXT: TextParameters,
    ActionKind.TRANSITION: TransitionParameters,
    ActionKind.BACKGROUND: BackgroundParameters,
    ActionKind.EXPORT: ExportParameters,
}


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
    message = error.get("msg", "invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{location}: {message}" if location else message


def parse_parameters(action: ActionKind, parameters: Optional[Dict[str, Any]]) -> ActionParameters:
    """Validate parameters and return the typed schema instance.

    Raises:
        ValidationError: If the action has no schema or parameters are invalid
    """
    schema = PARAMETER_SCHEMAS.get(action)
    if schema is None:
        raise ValidationError(f"No parameter schema for action '{action.value}'")
    if parameters is not None and not isinstance(parameters, dict):
        raise ValidationError("parameters must be an object")
    try:
        return schema.model_validate(parameters or {})
    except PydanticValidationError as e:
        errors = [_format_error(err) for err in e.errors()]
        raise ValidationError(
            f"Invalid parameters for {action.value}: {'; '.join(errors)}", errors
        )


def validate_parameters(action: ActionKind, parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate parameters, returning only the keys that were provided."""
    parsed = parse_parameters(action, parameters)
    return parsed.model_dump(by_alias=True, exclude_unset=True)


def _format_annotation(annotation: Any) -> str:
    origin = get_origin(annotation)
    if origin is Literal:
        return "|".join(f'"{arg}"' for arg in get_args(annotation))
    if origin is not None:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if origin in (list, List):
            return f"list[{_format_annotation(args[0])}]" if args else "list"
        if len(args) == 1:
            return _format_annotation(args[0])
    return getattr(annotation, "__name__", str(annotation))


def describe_schema(action: ActionKind) -> str:
    """One-line description of an action's parameters for prompts."""
    schema = PARAMETER_SCHEMAS.get(action)
    if schema is None:
        return "{}"
    parts = []
    for name, field in schema.model_fields.items():
        key = field.alias or name
        kind = _format_annotation(field.annotation)
        if field.is_required():
            parts.append(f"{key}: {kind} (required)")
        else:
            parts.append(f"{key}: {kind}")
    return "{" + ", ".join(parts) + "}"
