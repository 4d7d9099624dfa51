"""
Directory candidate source implementation.

Reads one prompt's candidate images from <root>/<prompt_id>/. Each image
file is one model's output; the label is derived from its file name.
"""

import re
from pathlib import Path

from typing_extensions import override

from ..interfaces import CandidateSource
from ..logging_config import get_logger
from ..models import Candidate, disambiguate_labels

IMAGE_SUFFIXES = (".webp", ".png", ".jpg", ".jpeg")

MODEL_NAME_MAPPINGS: dict[str, str] = {
    "chatgpt4o": "ChatGPT 4o",
    "chatgpt_4o": "ChatGPT 4o",
    "flux11_pro_ultra": "Flux 1.1 Pro Ultra",
    "flux_11_pro_ultra": "Flux 1.1 Pro Ultra",
    "ideogram3_quality": "Ideogram 3 Quality",
    "ideogram_3_quality": "Ideogram 3 Quality",
    "imagen3": "Imagen 3",
    "imagen_3": "Imagen 3",
    "imagen4_ultra": "Imagen 4 Ultra",
    "imagen_4_ultra": "Imagen 4 Ultra",
    "midjourney_v7": "Midjourney v7",
    "nano_banana": "Nano Banana",
    "recraft_v3": "Recraft v3",
    "seedream3": "Seedream 3",
    "seedream_3": "Seedream 3",
    "genpeach": "GenPeach",
}


def parse_model_name(filename: str) -> str:
    """
    Display name of the model that produced an image file.

    Exact table match first, then the first table key contained in the
    name, then the file stem split on "_"/"-" and capitalised.
    """
    stem = re.sub(r"\.(webp|png|jpg|jpeg)$", "", filename, flags=re.IGNORECASE)
    lower = stem.lower()
    if lower in MODEL_NAME_MAPPINGS:
        return MODEL_NAME_MAPPINGS[lower]

    for key, value in MODEL_NAME_MAPPINGS.items():
        if key in lower:
            return value

    return " ".join(word[:1].upper() + word[1:] for word in re.split(r"[_-]", stem))


class DirectoryCandidateSource(CandidateSource):
    """
    Candidate source that reads from a directory tree.

    Treats image files as opaque - only stores file paths.
    """

    def __init__(self, root_dir: Path):
        """
        Initialize directory candidate source.

        Args:
            root_dir: Directory containing one sub-directory per prompt
        """
        self.root_dir: Path = Path(root_dir)
        self.logger = get_logger("directory_source")

        if not self.root_dir.exists():
            raise FileNotFoundError(f"Candidates directory does not exist: {self.root_dir}")

        if not self.root_dir.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {self.root_dir}")

        self._cache = dict[str, list[Candidate]]()

    @override
    def list_candidates(self, prompt_id: str) -> list[Candidate]:
        """Candidates for a prompt, sorted by file name for a stable pairing order."""
        if prompt_id in self._cache:
            return list(self._cache[prompt_id])

        prompt_dir = self.root_dir / prompt_id
        # Security: prompt ids must not escape the root directory
        try:
            _ = prompt_dir.resolve().relative_to(self.root_dir.resolve())
        except ValueError:
            self.logger.warning(f"Skipping prompt outside candidates directory: {prompt_id}")
            return []

        if not prompt_dir.is_dir():
            self.logger.warning(f"No directory for prompt {prompt_id} in {self.root_dir}")
            return []

        image_files = sorted(
            p for p in prompt_dir.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
        )
        candidates = disambiguate_labels(
            Candidate(id=f"{prompt_id}_{p.stem}", label=parse_model_name(p.name), file_path=str(p.resolve()))
            for p in image_files
        )

        self._cache[prompt_id] = candidates
        self.logger.info(f"Loaded {len(candidates)} candidates for prompt {prompt_id} from {prompt_dir}")
        return list(candidates)

    def list_prompts(self) -> list[str]:
        """Prompt ids available under the root directory."""
        return sorted(p.name for p in self.root_dir.iterdir() if p.is_dir())

    def clear_cache(self) -> None:
        """Force a reload on the next list_candidates call."""
        self._cache.clear()
