"""Tests for the MoviePy toolchain."""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from unittest.mock import MagicMock, patch
from moviepy.editor import vfx, afx

from chat_video_editor.exceptions import ToolchainError
from chat_video_editor.tools.media_toolchain import (
    MoviePyToolchain, color_frame, grayscale_frame, gradient_frame, hex_to_rgb, resize_frame, sepia_frame
)


def make_clip(duration=60.0, size=(1280, 720), audio=True):
    clip = MagicMock()
    clip.duration = duration
    clip.size = size
    clip.fps = 30.0
    clip.audio = MagicMock() if audio else None
    return clip


class TestMoviePyToolchain:
    """Test operation wiring with MoviePy mocked out."""

    @pytest.fixture
    def toolchain(self):
        """Create toolchain instance."""
        return MoviePyToolchain()

    @pytest.fixture
    def output_path(self, tmp_path):
        return str(tmp_path / "out" / "result.mp4")

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_trim(self, mock_video_clip, toolchain, source_video, output_path):
        """Test trim cuts the requested range and writes output."""
        source = make_clip()
        trimmed = make_clip(duration=10.0)
        source.subclip.return_value = trimmed
        mock_video_clip.return_value = source

        result = toolchain.run("trim", source_video, {"startTime": 5, "duration": 10}, output_path)

        source.subclip.assert_called_once_with(5.0, 15.0)
        trimmed.write_videofile.assert_called_once()
        args, kwargs = trimmed.write_videofile.call_args
        assert args[0] == output_path
        assert kwargs["codec"] == "libx264"
        assert kwargs["audio_codec"] == "aac"
        assert result["output_path"] == output_path
        assert result["metadata"]["duration"] == 10.0
        assert result["metadata"]["has_audio"] is True
        source.close.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_trim_end_clamped(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip(duration=20.0)
        mock_video_clip.return_value = source

        toolchain.run("trim", source_video, {"startTime": 15, "endTime": 90}, output_path)

        source.subclip.assert_called_once_with(15.0, 20.0)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_trim_without_audio(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("trim", source_video, {"duration": 5, "preserveAudio": False}, output_path)

        source.subclip.return_value.without_audio.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_trim_start_beyond_duration(self, mock_video_clip, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip(duration=8.0)
        with pytest.raises(ToolchainError, match="beyond the media duration"):
            toolchain.run("trim", source_video, {"startTime": 30, "duration": 5}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_crop_out_of_bounds(self, mock_video_clip, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip(size=(640, 360))
        with pytest.raises(ToolchainError, match="does not fit"):
            toolchain.run("crop", source_video, {"x": 100, "y": 0, "width": 640, "height": 360}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_audio_requires_track(self, mock_video_clip, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip(audio=False)
        with pytest.raises(ToolchainError, match="no audio"):
            toolchain.run("audio", source_video, {"operation": "normalize"}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_volume(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("audio", source_video, {"operation": "volume", "volume": 1.5}, output_path)

        source.volumex.assert_called_once_with(1.5)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_export_codecs_and_bitrate(self, mock_video_clip, toolchain, source_video, tmp_path):
        source = make_clip(size=(1920, 1080))
        resized = make_clip(size=(1280, 720))
        source.fl_image.return_value = resized
        mock_video_clip.return_value = source

        toolchain.run(
            "export", source_video,
            {"format": "webm", "quality": "low", "resolution": "1280x720"},
            str(tmp_path / "out.webm")
        )

        resize = source.fl_image.call_args.args[0]
        assert resize(np.zeros((1080, 1920, 3), dtype=np.uint8)).shape == (720, 1280, 3)
        kwargs = resized.write_videofile.call_args.kwargs
        assert kwargs["codec"] == "libvpx"
        assert kwargs["audio_codec"] == "libvorbis"
        assert kwargs["bitrate"] == "1000k"

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_write_failure_wrapped_and_cleaned(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        def fail(path, **kwargs):
            with open(path, "wb") as f:
                f.write(b"partial")
            raise OSError("ffmpeg exited with 1")

        source.subclip.return_value.write_videofile.side_effect = fail

        with pytest.raises(ToolchainError, match="ffmpeg exited"):
            toolchain.run("trim", source_video, {"duration": 5}, output_path)
        assert not Path(output_path).exists()

    def test_missing_source(self, toolchain, tmp_path, output_path):
        with pytest.raises(ToolchainError, match="not found"):
            toolchain.run("trim", str(tmp_path / "missing.mp4"), {"duration": 5}, output_path)

    def test_unknown_operation(self, toolchain, source_video, output_path):
        with pytest.raises(ToolchainError, match="Unsupported operation"):
            toolchain.run("teleport", source_video, {}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_probe(self, mock_video_clip, toolchain, source_video):
        mock_video_clip.return_value = make_clip(duration=12.5, audio=False)
        metadata = toolchain.probe(source_video)
        assert metadata == {"duration": 12.5, "width": 1280, "height": 720, "fps": 30.0, "has_audio": False}

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_webm_temp_audio_matches_codec(self, mock_video_clip, toolchain, source_video, tmp_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("export", source_video, {"format": "webm"}, str(tmp_path / "clip.webm"))

        kwargs = source.write_videofile.call_args.kwargs
        assert kwargs["audio_codec"] == "libvorbis"
        assert kwargs["temp_audiofile"] == str(tmp_path / "clip_audio.ogg")
        assert kwargs["remove_temp"] is True

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_mp4_temp_audio_beside_output(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("trim", source_video, {"duration": 5}, output_path)

        kwargs = source.subclip.return_value.write_videofile.call_args.kwargs
        assert kwargs["temp_audiofile"] == str(Path(output_path).with_name("result_audio.m4a"))

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    @pytest.mark.parametrize("fps", [None, 24])
    def test_fps_option(self, mock_video_clip, fps, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        MoviePyToolchain(fps=fps).run("trim", source_video, {"duration": 5}, output_path)

        kwargs = source.subclip.return_value.write_videofile.call_args.kwargs
        assert kwargs.get("fps") == fps


class TestVisualOperations:
    """Filters, colour, text and transitions through run()."""

    @pytest.fixture
    def toolchain(self):
        return MoviePyToolchain()

    @pytest.fixture
    def output_path(self, tmp_path):
        return str(tmp_path / "result.mp4")

    @pytest.fixture
    def frame(self):
        rng = np.random.default_rng(1)
        return rng.integers(0, 256, size=(6, 8, 3), dtype=np.uint8)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_sepia_filter(self, mock_video_clip, toolchain, source_video, output_path, frame):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("filter", source_video, {"filterType": "sepia"}, output_path)

        apply = source.fl_image.call_args.args[0]
        assert np.array_equal(apply(frame), sepia_frame(frame))
        source.fl_image.return_value.write_videofile.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_black_white_filter(self, mock_video_clip, toolchain, source_video, output_path, frame):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("filter", source_video, {"filterType": "black_white"}, output_path)

        gray = source.fl_image.call_args.args[0](frame)
        assert np.allclose(gray[..., 0], gray[..., 2], atol=1)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    @pytest.mark.parametrize("filter_type", ["blur", "sharpen", "vintage"])
    def test_frame_filters_keep_shape(self, mock_video_clip, filter_type, toolchain, source_video, output_path, frame):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("filter", source_video, {"filterType": filter_type, "intensity": 1.5}, output_path)

        filtered = source.fl_image.call_args.args[0](frame)
        assert filtered.shape == frame.shape
        assert filtered.dtype == np.uint8

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_speed_filter(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("filter", source_video, {"filterType": "speed", "intensity": 2.0}, output_path)

        source.fx.assert_called_once_with(vfx.speedx, 2.0)
        source.fx.return_value.write_videofile.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_unknown_filter(self, mock_video_clip, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip()
        with pytest.raises(ToolchainError, match="Unsupported filter type"):
            toolchain.run("filter", source_video, {"filterType": "glitter"}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_color(self, mock_video_clip, toolchain, source_video, output_path, frame):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("color", source_video, {"brightness": 0.2, "saturation": 1.2}, output_path)

        adjust = source.fl_image.call_args.args[0]
        assert np.array_equal(adjust(frame), color_frame(frame, brightness=0.2, saturation=1.2))

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.TextClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_text_overlay(self, mock_video_clip, mock_text_clip, mock_composite, toolchain, source_video, output_path):
        source = make_clip(duration=20.0)
        mock_video_clip.return_value = source

        toolchain.run("text", source_video, {
            "text": "Happy holidays", "x": 40, "y": 60, "fontSize": 48,
            "color": "yellow", "fontFamily": "Arial", "startTime": 18, "duration": 5,
        }, output_path)

        mock_text_clip.assert_called_once_with("Happy holidays", fontsize=48, color="yellow", font="Arial")
        positioned = mock_text_clip.return_value.set_position
        positioned.assert_called_once_with((40, 60))
        positioned.return_value.set_start.assert_called_once_with(18.0)
        # Clamped to the remaining 2 seconds
        positioned.return_value.set_start.return_value.set_duration.assert_called_once_with(2.0)
        overlay = positioned.return_value.set_start.return_value.set_duration.return_value
        mock_composite.assert_called_once_with([source, overlay], size=source.size)
        mock_composite.return_value.write_videofile.assert_called_once()
        overlay.close.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_text_start_beyond_duration(self, mock_video_clip, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip(duration=5.0)
        with pytest.raises(ToolchainError, match="beyond the media duration"):
            toolchain.run("text", source_video, {"text": "late", "startTime": 9}, output_path)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    @pytest.mark.parametrize("position, effects", [
        ("start", [(vfx.fadein, 1.0)]),
        ("end", [(vfx.fadeout, 1.0)]),
        ("both", [(vfx.fadein, 1.0), (vfx.fadeout, 1.0)]),
    ])
    def test_fade_positions(self, mock_video_clip, position, effects, toolchain, source_video, output_path):
        source = make_clip()
        source.fx.return_value = source
        mock_video_clip.return_value = source

        toolchain.run("transition", source_video, {"type": "fade", "position": position}, output_path)

        assert [c.args for c in source.fx.call_args_list] == effects

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_dissolve_fades_audio(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip(duration=6.0)
        source.fx.return_value = source
        mock_video_clip.return_value = source

        toolchain.run("transition", source_video, {"type": "dissolve", "position": "both", "duration": 5}, output_path)

        # Capped at half the clip
        assert [c.args for c in source.fx.call_args_list] == [
            (vfx.fadein, 3.0), (afx.audio_fadein, 3.0), (vfx.fadeout, 3.0), (afx.audio_fadeout, 3.0)
        ]

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_dissolve_without_audio(self, mock_video_clip, toolchain, source_video, output_path):
        source = make_clip(audio=False)
        source.fx.return_value = source
        mock_video_clip.return_value = source

        toolchain.run("transition", source_video, {"type": "dissolve", "position": "start"}, output_path)

        assert [c.args for c in source.fx.call_args_list] == [(vfx.fadein, 1.0)]


class TestAudioOperations:

    @pytest.fixture
    def toolchain(self):
        return MoviePyToolchain()

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    @pytest.mark.parametrize("operation, effect", [
        ("fadeIn", afx.audio_fadein), ("fadeOut", afx.audio_fadeout)
    ])
    def test_fades(self, mock_video_clip, operation, effect, toolchain, source_video, tmp_path):
        source = make_clip(duration=2.0)
        mock_video_clip.return_value = source

        toolchain.run("audio", source_video, {"operation": operation, "duration": 4}, str(tmp_path / "a.mp4"))

        source.fx.assert_called_once_with(effect, 2.0)

    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_denoise_gate(self, mock_video_clip, toolchain, source_video, tmp_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("audio", source_video, {"operation": "denoise"}, str(tmp_path / "a.mp4"))

        gate = source.audio.fl.call_args.args[0]
        samples = np.array([[0.01, -0.5], [0.3, -0.001]])
        gated = gate(lambda t: samples, 0.0)
        assert np.allclose(gated, [[0.001, -0.5], [0.3, -0.0001]])
        source.set_audio.assert_called_once_with(source.audio.fl.return_value)


class TestBackgroundOperations:
    """Chroma key removal and replacement."""

    @pytest.fixture
    def toolchain(self):
        return MoviePyToolchain()

    @pytest.fixture
    def output_path(self, tmp_path):
        return str(tmp_path / "keyed.mp4")

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.ColorClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_remove(self, mock_video_clip, mock_color_clip, mock_composite, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("background", source_video, {"action": "remove"}, output_path)

        args, kwargs = source.fx.call_args
        assert args == (vfx.mask_color,)
        assert kwargs["color"] == [0, 255, 0]
        assert kwargs["thr"] == pytest.approx(44.1)
        assert kwargs["s"] == pytest.approx(5.0)
        mock_color_clip.assert_called_once_with(size=(1280, 720), color=(0, 0, 0), duration=60.0)
        mock_composite.assert_called_once_with(
            [mock_color_clip.return_value, source.fx.return_value], size=(1280, 720)
        )
        mock_composite.return_value.set_audio.assert_called_once_with(source.audio)
        mock_composite.return_value.set_audio.return_value.write_videofile.assert_called_once()

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.ColorClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_key_tolerance_mapping(self, mock_video_clip, mock_color_clip, mock_composite, toolchain, source_video, output_path):
        source = make_clip(audio=False)
        mock_video_clip.return_value = source

        toolchain.run("background", source_video, {"color": "#0000FF", "similarity": 0.5, "blend": 0.0}, output_path)

        kwargs = source.fx.call_args.kwargs
        assert kwargs["color"] == [0, 0, 255]
        assert kwargs["thr"] == pytest.approx(220.5)
        assert kwargs["s"] == pytest.approx(1.0)
        mock_composite.return_value.set_audio.assert_not_called()

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.ColorClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_replace_solid(self, mock_video_clip, mock_color_clip, mock_composite, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip()

        toolchain.run("background", source_video, {
            "action": "replace", "backgroundType": "solid", "backgroundColor": "#112233"
        }, output_path)

        mock_color_clip.assert_called_once_with(size=(1280, 720), color=(17, 34, 51), duration=60.0)

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.ImageClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_replace_gradient(self, mock_video_clip, mock_image_clip, mock_composite, toolchain, source_video, output_path):
        mock_video_clip.return_value = make_clip(size=(64, 36))

        toolchain.run("background", source_video, {
            "action": "replace", "backgroundType": "gradient", "gradientColors": ["#000000", "#FFFFFF"]
        }, output_path)

        gradient = mock_image_clip.call_args.args[0]
        assert gradient.shape == (36, 64, 3)
        assert gradient[-1, 0].tolist() == [255, 255, 255]
        assert mock_image_clip.call_args.kwargs["duration"] == 60.0
        assert mock_composite.call_args.args[0][0] is mock_image_clip.return_value

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.ImageClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_replace_image(self, mock_video_clip, mock_image_clip, mock_composite, toolchain, source_video, output_path, tmp_path):
        image_path = tmp_path / "beach.png"
        Image.new("RGB", (200, 100), (10, 20, 30)).save(image_path)
        mock_video_clip.return_value = make_clip(size=(64, 36))

        toolchain.run("background", source_video, {
            "action": "replace", "backgroundType": "image", "backgroundImage": str(image_path)
        }, output_path)

        pixels = mock_image_clip.call_args.args[0]
        assert pixels.shape == (36, 64, 3)
        assert pixels[0, 0].tolist() == [10, 20, 30]

    @patch('chat_video_editor.tools.media_toolchain.CompositeVideoClip')
    @patch('chat_video_editor.tools.media_toolchain.VideoFileClip')
    def test_replace_blur(self, mock_video_clip, mock_composite, toolchain, source_video, output_path):
        source = make_clip()
        mock_video_clip.return_value = source

        toolchain.run("background", source_video, {
            "action": "replace", "backgroundType": "blur", "blurRadius": 4
        }, output_path)

        blurred_clip = source.without_audio.return_value.fl_image
        frame = np.zeros((6, 8, 3), dtype=np.uint8)
        assert blurred_clip.call_args.args[0](frame).shape == (6, 8, 3)
        assert mock_composite.call_args.args[0][0] is blurred_clip.return_value


class TestFrameHelpers:
    """Pure numpy frame transforms."""

    @pytest.fixture
    def frame(self):
        rng = np.random.default_rng(0)
        return rng.integers(0, 256, size=(4, 6, 3), dtype=np.uint8)

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#00FF80") == (0, 255, 128)

    def test_color_identity(self, frame):
        assert np.array_equal(color_frame(frame), frame)

    def test_brightness_raises_values(self, frame):
        assert color_frame(frame, brightness=0.2).mean() > frame.mean()

    def test_grayscale_channels_equal(self, frame):
        gray = grayscale_frame(frame)
        assert np.allclose(gray[..., 0], gray[..., 1], atol=1)
        assert np.allclose(gray[..., 1], gray[..., 2], atol=1)

    def test_sepia_shape_and_dtype(self, frame):
        toned = sepia_frame(frame)
        assert toned.shape == frame.shape
        assert toned.dtype == np.uint8

    def test_gradient(self):
        gradient = gradient_frame((8, 4), "#000000", "#FFFFFF")
        assert gradient.shape == (4, 8, 3)
        assert gradient[0, 0].tolist() == [0, 0, 0]
        assert gradient[-1, -1].tolist() == [255, 255, 255]

    def test_resize(self, frame):
        assert resize_frame(frame, (3, 2)).shape == (2, 3, 3)
