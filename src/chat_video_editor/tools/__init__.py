"""Language model, media toolchain and transformation engine."""

from .language_model import LanguageModelConnector, GeminiConnector
from .media_toolchain import MediaToolchain, MoviePyToolchain
from .transformation_engine import MediaTransformationEngine

__all__ = [
    "LanguageModelConnector",
    "GeminiConnector",
    "MediaToolchain",
    "MoviePyToolchain",
    "MediaTransformationEngine",
]
