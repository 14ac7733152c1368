"""
Configuration loader for the Bitmap Subtitle OCR tool.
Loads from config.yaml and allows CLI argument overrides.
"""

import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass
class EngineConfig:
    data_path: Optional[str] = None  # None = tesseract's built-in default
    language: str = "eng"
    oem: int = 3  # 0 legacy, 1 LSTM, 2 combined, 3 default
    blacklist: str = ""
    dpi: int = 72


@dataclass
class GateConfig:
    min_width: int = 9
    min_height: int = 1


@dataclass
class PoolConfig:
    size: int = 0  # 0 = auto-detect CPU cores


@dataclass
class OutputConfig:
    dump_images: bool = False
    force_next_start: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level application configuration."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    pool: PoolConfig = field(default_factory=PoolConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def verbose(self) -> bool:
        return self.logging.verbose

    def update_from_args(self, args):
        """Override config values from CLI arguments."""
        if getattr(args, "lang", None):
            self.engine.language = tesseract_language(args.lang)
        if getattr(args, "tesseract_lang", None):
            self.engine.language = args.tesseract_lang
        if getattr(args, "tesseract_data", None):
            self.engine.data_path = args.tesseract_data
        if getattr(args, "tesseract_oem", None) is not None:
            self.engine.oem = args.tesseract_oem
        if getattr(args, "blacklist", None):
            self.engine.blacklist = args.blacklist
        if getattr(args, "dpi", None):
            self.engine.dpi = args.dpi
        if getattr(args, "min_width", None) is not None:
            self.gate.min_width = args.min_width
        if getattr(args, "min_height", None) is not None:
            self.gate.min_height = args.min_height
        if getattr(args, "max_threads", None) is not None:
            self.pool.size = args.max_threads
        if getattr(args, "dump_images", False):
            self.output.dump_images = True
        if getattr(args, "dumb", False):
            self.output.force_next_start = True
        if getattr(args, "verbose", False):
            self.logging.verbose = True


# ISO 639-1 codes mapped to the traineddata names tesseract ships
TESSERACT_LANGUAGES = {
    "en": "eng",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "nl": "nld",
    "sv": "swe",
    "da": "dan",
    "no": "nor",
    "fi": "fin",
    "pl": "pol",
    "cs": "ces",
    "hu": "hun",
    "el": "ell",
    "tr": "tur",
    "ru": "rus",
    "uk": "ukr",
    "ja": "jpn",
    "ko": "kor",
    "zh": "chi_sim",
    "ar": "ara",
    "he": "heb",
    "hi": "hin",
}


def tesseract_language(code: str) -> str:
    """
    Map a two-letter language code to tesseract's language name.

    Codes that are not two-letter ISO 639-1 codes (e.g. "eng", "chi_tra")
    are returned unchanged.
    """
    return TESSERACT_LANGUAGES.get(code.strip().lower(), code)


def _dict_to_dataclass(cls, data: dict):
    """Recursively convert a dict to a dataclass, ignoring unknown keys."""
    if data is None:
        return cls()
    field_names = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in field_names}
    return cls(**filtered)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    Falls back to defaults if file is missing.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning(f"Config file not found at {path}, using defaults.")
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig(
        engine=_dict_to_dataclass(EngineConfig, raw.get("engine")),
        gate=_dict_to_dataclass(GateConfig, raw.get("gate")),
        pool=_dict_to_dataclass(PoolConfig, raw.get("pool")),
        output=_dict_to_dataclass(OutputConfig, raw.get("output")),
        logging=_dict_to_dataclass(LoggingConfig, raw.get("logging")),
    )

    logger.info(f"Configuration loaded from {path}")
    return config
