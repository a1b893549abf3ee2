"""
Custom rule source for loading local JSON/YAML files.

House rules and homebrew content live in structured files that layer on top
of the built-in SRD content.
"""

import json
import logging
from pathlib import Path

import yaml

from ..models import RuleSourceType
from .base import RuleSourceBase


logger = logging.getLogger("d20-rules.rulebooks")


class CustomSourceError(Exception):
    """Error loading or parsing a custom rule file."""
    pass


class CustomSource(RuleSourceBase):
    """
    Rule source for loading a local JSON or YAML file.

    Partial files are fine (e.g., a file with only a few feats). Definitions
    that fail validation are logged and skipped; the rest of the file loads.

    Expected file structure:
    ```yaml
    $schema: d20-rules/catalog-v1
    name: My House Rules
    version: "1.0"
    content:
      feats: [...]
      spells: [...]
      items: [...]
      classes: [...]
      races: [...]
    ```
    """

    SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}
    CURRENT_SCHEMA = "d20-rules/catalog-v1"

    def __init__(self, path: Path | str, source_id: str | None = None):
        """
        Initialize a custom source from a file path.

        Args:
            path: Path to the JSON or YAML file
            source_id: Optional custom ID. If not provided, derived from filename.
        """
        self.path = Path(path)

        if source_id is None:
            # "house_rules.yaml" -> "custom-house-rules"
            source_id = f"custom-{self.path.stem.replace('_', '-').lower()}"

        super().__init__(source_id=source_id, source_type=RuleSourceType.CUSTOM)
        self.version = "1.0"

    def load(self) -> None:
        """Load and parse the rule file."""
        if not self.path.exists():
            raise CustomSourceError(f"Rule file not found: {self.path}")

        suffix = self.path.suffix.lower()
        if suffix not in self.SUPPORTED_EXTENSIONS:
            raise CustomSourceError(
                f"Unsupported file format: {suffix}. "
                f"Supported: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}"
            )

        try:
            raw_content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise CustomSourceError(f"Failed to read file: {e}") from e

        try:
            if suffix == ".json":
                data = json.loads(raw_content)
            else:
                data = yaml.safe_load(raw_content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise CustomSourceError(f"Failed to parse {suffix} file: {e}") from e

        if not isinstance(data, dict):
            raise CustomSourceError("Rule file must be a JSON/YAML object at the top level")

        schema = data.get("$schema")
        if schema and schema != self.CURRENT_SCHEMA:
            logger.warning(
                f"Rule file schema '{schema}' differs from current '{self.CURRENT_SCHEMA}'. "
                "Some definitions may not load correctly."
            )

        self.name = data.get("name", self.source_id)
        self.version = str(data.get("version", "1.0"))

        # Support both nested and flat structure
        content = data.get("content", data)
        if not isinstance(content, dict):
            raise CustomSourceError("'content' must be an object keyed by section")

        self._parse_content(content, origin=str(self.path))
        self._mark_loaded()

        logger.info(f"Loaded custom rules '{self.name}' from {self.path}: {self.stats_summary()}")


__all__ = [
    "CustomSource",
    "CustomSourceError",
]
