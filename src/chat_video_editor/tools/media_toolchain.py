"""Media transformation toolchain built on MoviePy."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageFilter
from moviepy.editor import (
    VideoFileClip, ImageClip, ColorClip, CompositeVideoClip, TextClip, vfx, afx
)

from ..exceptions import ToolchainError


logger = logging.getLogger(__name__)


SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
], dtype=np.float32)

EXPORT_CODECS = {
    "mp4": ("libx264", "aac"),
    "mov": ("libx264", "aac"),
    "webm": ("libvpx", "libvorbis"),
}

# MoviePy writes the audio track to a temp file first; its container must accept the codec
AUDIO_TEMP_EXTENSIONS = {
    "aac": ".m4a",
    "libvorbis": ".ogg",
    "libmp3lame": ".mp3",
    "pcm_s16le": ".wav",
}

EXPORT_BITRATES = {
    "high": ("5000k", "192k"),
    "medium": ("2500k", "128k"),
    "low": ("1000k", "96k"),
}


class MediaToolchain(ABC):
    """The external media-processing engine.

    Only the transformation engine talks to a toolchain.
    """

    @abstractmethod
    def run(
        self,
        operation_name: str,
        source_path: str,
        parameters: Dict[str, Any],
        output_path: str
    ) -> Dict[str, Any]:
        """Run one operation and write the result to ``output_path``.

        Returns:
            ``{"output_path": str, "metadata": dict}``

        Raises:
            ToolchainError: If the operation cannot be executed
        """
        pass

    @abstractmethod
    def probe(self, source_path: str) -> Dict[str, Any]:
        """Return basic metadata (duration, size, fps, has_audio).

        Raises:
            ToolchainError: If the file cannot be read
        """
        pass


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.lstrip('#')
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def sepia_frame(frame: np.ndarray, amount: float = 1.0) -> np.ndarray:
    toned = frame.astype(np.float32) @ SEPIA_MATRIX.T
    mixed = frame.astype(np.float32) * (1 - amount) + toned * amount
    return np.clip(mixed, 0, 255).astype(np.uint8)


def grayscale_frame(frame: np.ndarray, amount: float = 1.0) -> np.ndarray:
    img = frame.astype(np.float32)
    gray = (img @ np.array([0.299, 0.587, 0.114], dtype=np.float32))[..., None]
    mixed = img * (1 - amount) + gray * amount
    return np.clip(mixed, 0, 255).astype(np.uint8)


def color_frame(
    frame: np.ndarray,
    brightness: float = 0.0,
    contrast: float = 1.0,
    saturation: float = 1.0,
    hue: float = 0.0,
    gamma: float = 1.0
) -> np.ndarray:
    """Brightness offset, contrast/saturation multipliers, hue rotation, gamma."""
    out = frame
    if hue:
        hsv = np.array(Image.fromarray(out).convert("HSV"), dtype=np.int16)
        hsv[..., 0] = (hsv[..., 0] + int(round(hue / 360.0 * 255))) % 256
        out = np.array(Image.fromarray(hsv.astype(np.uint8), "HSV").convert("RGB"))

    img = out.astype(np.float32) / 255.0
    img = img + brightness
    img = (img - 0.5) * contrast + 0.5
    gray = (img @ np.array([0.299, 0.587, 0.114], dtype=np.float32))[..., None]
    img = gray + (img - gray) * saturation
    img = np.clip(img, 0.0, 1.0)
    if gamma != 1.0:
        img = img ** (1.0 / gamma)
    return np.clip(np.round(img * 255), 0, 255).astype(np.uint8)


def blur_frame(frame: np.ndarray, radius: float) -> np.ndarray:
    return np.array(Image.fromarray(frame).filter(ImageFilter.GaussianBlur(radius=radius)))


def sharpen_frame(frame: np.ndarray, amount: float) -> np.ndarray:
    unsharp = ImageFilter.UnsharpMask(radius=2, percent=int(100 * amount), threshold=3)
    return np.array(Image.fromarray(frame).filter(unsharp))


def resize_frame(frame: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    return np.array(Image.fromarray(frame).resize(size, Image.LANCZOS))


def temp_audio_path(output_path: str, audio_codec: str) -> str:
    """Temp audio file beside the output, with an extension the codec can be muxed into."""
    extension = AUDIO_TEMP_EXTENSIONS.get(audio_codec, ".m4a")
    path = Path(output_path)
    return str(path.with_name(f"{path.stem}_audio{extension}"))


def gradient_frame(size: Tuple[int, int], top: str, bottom: str) -> np.ndarray:
    width, height = size
    start = np.array(hex_to_rgb(top), dtype=np.float32)
    end = np.array(hex_to_rgb(bottom), dtype=np.float32)
    ramp = np.linspace(0.0, 1.0, height, dtype=np.float32)[:, None, None]
    rows = start * (1 - ramp) + end * ramp
    return np.repeat(rows, width, axis=1).astype(np.uint8)


class MoviePyToolchain(MediaToolchain):
    """Runs transformations with MoviePy and writes H.264/AAC output."""

    def __init__(self, video_codec: str = "libx264", audio_codec: str = "aac", fps: Optional[int] = None):
        self.video_codec = video_codec
        self.audio_codec = audio_codec
        self.fps = fps
        self.noise_gate_threshold = 0.02
        self._operations: Dict[str, Callable] = {
            "trim": self._trim,
            "crop": self._crop,
            "filter": self._filter,
            "color": self._color,
            "audio": self._audio,
            "text": self._text,
            "transition": self._transition,
            "background": self._background,
            "export": self._export,
        }

    def run(
        self,
        operation_name: str,
        source_path: str,
        parameters: Dict[str, Any],
        output_path: str
    ) -> Dict[str, Any]:
        handler = self._operations.get(operation_name)
        if handler is None:
            raise ToolchainError(f"Unsupported operation: {operation_name}")
        if not Path(source_path).exists():
            raise ToolchainError(f"Source file not found: {source_path}")

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        source = None
        temp_audio = None
        to_close: List[Any] = []

        try:
            source = VideoFileClip(source_path)
            result, write_options = handler(source, parameters, to_close)
            to_close.append(result)

            options = {
                "codec": self.video_codec,
                "audio_codec": self.audio_codec,
                "remove_temp": True,
                "logger": None,
            }
            if self.fps:
                options["fps"] = self.fps
            options.update(write_options)
            temp_audio = temp_audio_path(output_path, options["audio_codec"])
            options["temp_audiofile"] = temp_audio

            logger.info(f"Writing {operation_name} output to {output_path}")
            result.write_videofile(output_path, **options)

            return {
                "output_path": output_path,
                "metadata": {
                    "operation": operation_name,
                    "duration": result.duration,
                    "width": result.size[0],
                    "height": result.size[1],
                    "has_audio": result.audio is not None,
                },
            }

        except ToolchainError:
            self._remove_partial(output_path, temp_audio)
            raise
        except Exception as e:
            self._remove_partial(output_path, temp_audio)
            logger.error(f"MoviePy {operation_name} failed: {e}")
            raise ToolchainError(f"{operation_name} failed: {e}") from e

        finally:
            for clip in to_close:
                if clip is not None:
                    try:
                        clip.close()
                    except Exception:
                        pass
            if source is not None:
                source.close()

    def probe(self, source_path: str) -> Dict[str, Any]:
        if not Path(source_path).exists():
            raise ToolchainError(f"Source file not found: {source_path}")
        clip = None
        try:
            clip = VideoFileClip(source_path)
            return {
                "duration": clip.duration,
                "width": clip.size[0],
                "height": clip.size[1],
                "fps": clip.fps,
                "has_audio": clip.audio is not None,
            }
        except Exception as e:
            raise ToolchainError(f"Cannot read media: {e}") from e
        finally:
            if clip is not None:
                clip.close()

    @staticmethod
    def _remove_partial(*paths: Optional[str]) -> None:
        for value in paths:
            if value and Path(value).exists():
                Path(value).unlink()

    # Operations return (clip, extra write_videofile options)

    def _trim(self, clip, params, to_close):
        start = float(params.get("startTime", 0))
        if start >= clip.duration:
            raise ToolchainError(f"startTime {start}s is beyond the media duration {clip.duration:.2f}s")
        if params.get("endTime") is not None:
            end = float(params["endTime"])
        else:
            end = start + float(params["duration"])
        end = min(end, clip.duration)

        trimmed = clip.subclip(start, end)
        if not params.get("preserveAudio", True):
            trimmed = trimmed.without_audio()
        logger.debug(f"Trimmed {start:.2f}s-{end:.2f}s")
        return trimmed, {}

    def _crop(self, clip, params, to_close):
        x, y = int(params.get("x", 0)), int(params.get("y", 0))
        width, height = int(params["width"]), int(params["height"])
        clip_w, clip_h = clip.size
        if x + width > clip_w or y + height > clip_h:
            raise ToolchainError(
                f"Crop {width}x{height}+{x}+{y} does not fit in {clip_w}x{clip_h}"
            )
        # Even dimensions for libx264
        width, height = width // 2 * 2, height // 2 * 2
        return clip.fx(vfx.crop, x1=x, y1=y, width=width, height=height), {}

    def _filter(self, clip, params, to_close):
        filter_type = params["filterType"]
        intensity = float(params.get("intensity", 1.0))
        amount = min(intensity, 1.0)

        if filter_type == "black_white":
            return clip.fl_image(lambda f: grayscale_frame(f, amount)), {}
        if filter_type == "sepia":
            return clip.fl_image(lambda f: sepia_frame(f, amount)), {}
        if filter_type == "vintage":
            def vintage(frame):
                toned = sepia_frame(frame, 0.6 * amount)
                return color_frame(toned, brightness=0.03, contrast=0.9, saturation=0.85)
            return clip.fl_image(vintage), {}
        if filter_type == "blur":
            return clip.fl_image(lambda f: blur_frame(f, 2.0 * intensity)), {}
        if filter_type == "sharpen":
            return clip.fl_image(lambda f: sharpen_frame(f, intensity)), {}
        if filter_type == "speed":
            return clip.fx(vfx.speedx, intensity), {}
        raise ToolchainError(f"Unsupported filter type: {filter_type}")

    def _color(self, clip, params, to_close):
        settings = {
            "brightness": float(params.get("brightness", 0.0)),
            "contrast": float(params.get("contrast", 1.0)),
            "saturation": float(params.get("saturation", 1.0)),
            "hue": float(params.get("hue", 0.0)),
            "gamma": float(params.get("gamma", 1.0)),
        }
        return clip.fl_image(lambda f: color_frame(f, **settings)), {}

    def _audio(self, clip, params, to_close):
        if clip.audio is None:
            raise ToolchainError("Source has no audio track")

        operation = params["operation"]
        volume = float(params.get("volume", 1.0))
        duration = min(float(params.get("duration", 1.0)), clip.duration)

        if operation == "enhance":
            return clip.fx(afx.audio_normalize).volumex(volume), {}
        if operation == "normalize":
            return clip.fx(afx.audio_normalize), {}
        if operation == "volume":
            return clip.volumex(volume), {}
        if operation == "fadeIn":
            return clip.fx(afx.audio_fadein, duration), {}
        if operation == "fadeOut":
            return clip.fx(afx.audio_fadeout, duration), {}
        if operation == "denoise":
            threshold = self.noise_gate_threshold

            def gate(get_frame, t):
                frame = get_frame(t)
                return np.where(np.abs(frame) < threshold, frame * 0.1, frame)

            return clip.set_audio(clip.audio.fl(gate, keep_duration=True)), {}
        raise ToolchainError(f"Unsupported audio operation: {operation}")

    def _text(self, clip, params, to_close):
        start = float(params.get("startTime", 0))
        if start >= clip.duration:
            raise ToolchainError(f"Text startTime {start}s is beyond the media duration")
        duration = min(float(params.get("duration", 5)), clip.duration - start)

        text_options = {"fontsize": int(params.get("fontSize", 24)), "color": params.get("color", "white")}
        if params.get("fontFamily"):
            text_options["font"] = params["fontFamily"]

        overlay = (
            TextClip(params["text"], **text_options)
            .set_position((int(params.get("x", 10)), int(params.get("y", 10))))
            .set_start(start)
            .set_duration(duration)
        )
        to_close.append(overlay)
        return CompositeVideoClip([clip, overlay], size=clip.size), {}

    def _transition(self, clip, params, to_close):
        duration = min(float(params.get("duration", 1.0)), clip.duration / 2)
        position = params.get("position", "start")
        dissolve = params.get("type", "fade") == "dissolve"

        result = clip
        if position in ("start", "both"):
            result = result.fx(vfx.fadein, duration)
            if dissolve and result.audio is not None:
                result = result.fx(afx.audio_fadein, duration)
        if position in ("end", "both"):
            result = result.fx(vfx.fadeout, duration)
            if dissolve and result.audio is not None:
                result = result.fx(afx.audio_fadeout, duration)
        return result, {}

    def _background(self, clip, params, to_close):
        key_color = list(hex_to_rgb(params.get("color", "#00FF00")))
        # similarity 0-1 maps onto RGB distance, blend onto mask softness
        threshold = float(params.get("similarity", 0.1)) * 441.0
        softness = 1.0 + float(params.get("blend", 0.2)) * 20.0
        keyed = clip.fx(vfx.mask_color, color=key_color, thr=threshold, s=softness)

        if params.get("action", "remove") == "remove":
            background = ColorClip(size=clip.size, color=(0, 0, 0), duration=clip.duration)
        else:
            background = self._make_background(clip, params)
        to_close.append(background)

        composite = CompositeVideoClip([background, keyed], size=clip.size)
        if clip.audio is not None:
            composite = composite.set_audio(clip.audio)
        return composite, {}

    def _make_background(self, clip, params):
        background_type = params.get("backgroundType", "solid")
        if background_type == "image":
            image = Image.open(params["backgroundImage"]).convert("RGB").resize(tuple(clip.size), Image.LANCZOS)
            return ImageClip(np.array(image), duration=clip.duration)
        if background_type == "blur":
            radius = float(params.get("blurRadius", 10))
            return clip.without_audio().fl_image(lambda f: blur_frame(f, radius))
        if background_type == "gradient":
            top, bottom = params.get("gradientColors", ["#000000", "#333333"])
            return ImageClip(gradient_frame(clip.size, top, bottom), duration=clip.duration)
        color = hex_to_rgb(params.get("backgroundColor", "#000000"))
        return ColorClip(size=clip.size, color=color, duration=clip.duration)

    def _export(self, clip, params, to_close):
        video_codec, audio_codec = EXPORT_CODECS[params.get("format", "mp4")]
        bitrate, audio_bitrate = EXPORT_BITRATES[params.get("quality", "high")]

        result = clip
        if params.get("resolution"):
            width, height = map(int, params["resolution"].split('x'))
            size = (width // 2 * 2, height // 2 * 2)
            result = clip.fl_image(lambda f: resize_frame(f, size))

        return result, {
            "codec": video_codec,
            "audio_codec": audio_codec,
            "bitrate": bitrate,
            "audio_bitrate": audio_bitrate,
        }
