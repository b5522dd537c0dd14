from __future__ import annotations

import logging
from pathlib import Path

from releasewatch.config.settings import Settings


def setup_logging(s: Settings) -> None:
    log_path = s.log_file or "logs/run.log"

    Path(log_path).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # keep request chatter out of the run log
    logging.getLogger("urllib3").setLevel(logging.WARNING)
