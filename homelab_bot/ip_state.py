import logging
from pathlib import Path
from typing import Optional, Union

logger: logging.Logger = logging.getLogger(__name__)

STATE_FILE_NAME: str = "last_external_ip.txt"


# ------------------------------
# Last external IP storage
# ------------------------------
class ExternalIPStore:
    def __init__(self, state_dir: Union[str, Path]) -> None:
        self.state_dir: Path = Path(state_dir)

    @property
    def path(self) -> Path:
        return self.state_dir / STATE_FILE_NAME

    def ensure_state_dir(self) -> bool:
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            return True
        except Exception as mkdir_error:
            logger.error(
                "Failed to ensure state directory at %s: %s",
                self.state_dir,
                mkdir_error,
            )
            return False

    def read(self) -> Optional[str]:
        try:
            saved: str = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except Exception as read_error:
            logger.error("Failed to read last external IP: %s", read_error)
            return None
        trimmed: str = saved.strip()
        return trimmed or None

    def write(self, address: str) -> bool:
        try:
            self.path.write_text(f"{address}\n", encoding="utf-8")
            logger.debug("Saved last external IP %s to %s", address, self.path)
            return True
        except Exception as write_error:
            logger.error("Failed to write last external IP: %s", write_error)
            return False
