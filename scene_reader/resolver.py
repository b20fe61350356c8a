"""Map (scene, language, index) to the sentence to speak."""

from scene_reader.constants import FALLBACK_TEXT
from scene_reader.models import Scene


def clamp_index(index: int, count: int) -> int:
    """Clamp index into [0, count - 1]; 0 when there is nothing to index."""
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))


def resolve_sentence(scene: Scene | None, language: str, index: int) -> str:
    """Return the sentence at the clamped index, or FALLBACK_TEXT.

    Never raises and never returns an empty string.
    """
    if scene is None:
        return FALLBACK_TEXT
    sentences = scene.sentences.get(language)
    if not sentences:
        return FALLBACK_TEXT
    return sentences[clamp_index(index, len(sentences))]
