"""Path resolution relative to the mmdot config file."""
import os
from pathlib import Path
from typing import Optional, Union


class PathResolver:
    """
    Turn "~" and relative paths into absolute paths.

    Relative paths are rooted at the directory of the mmdot config file,
    so nothing depends on the process working directory.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else None

    @classmethod
    def for_config(cls, config_path: Path) -> "PathResolver":
        return cls(Path(config_path).resolve().parent)

    def resolve(self, path: Union[str, Path]) -> Path:
        expanded = Path(os.path.expanduser(str(path)))

        if expanded.is_absolute():
            return Path(os.path.normpath(expanded))

        if self.config_dir is not None:
            return Path(os.path.normpath(self.config_dir / expanded))

        return expanded.resolve()

    def resolve_optional(self, path: Optional[str]) -> Optional[Path]:
        if not path:
            return None
        return self.resolve(path)
