"""
Bitmap Subtitle OCR — CLI Entry Point

Usage:
    python main.py subs.yaml
    python main.py subs.yaml -o movie.en.srt
    python main.py subs.yaml --lang de --max-threads 4
    python main.py subs.yaml --blacklist "|~<>" --dump-images
"""

import sys
import argparse
import logging
from pathlib import Path

from config import load_config
from ocr_pipeline.engine import EngineInitError
from ocr_pipeline.image_source import ImageSequenceSource
from ocr_pipeline.orchestrator import SubtitleOCRPipeline


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging for the application."""
    log_format = (
        "%(asctime)s | %(levelname)-7s | %(name)-20s | %(message)s"
    )
    date_format = "%H:%M:%S"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    # Suppress noisy third-party loggers
    logging.getLogger("PIL").setLevel(logging.WARNING)


def print_banner():
    """Print the application banner."""
    banner = """
==========================================================
          Bitmap Subtitle OCR

  Subtitle images  ->  SRT text track
  Powered by Tesseract (tesserocr)
  Parallel OCR  |  Order-preserving output
==========================================================
"""
    print(banner)


def print_progress(message: str, percent: int):
    """Console progress callback with progress bar."""
    bar_width = 30
    filled = int(bar_width * percent / 100)
    bar = "#" * filled + "-" * (bar_width - filled)
    print(f"\r  [{bar}] {percent:3d}%  {message:<50}", end="", flush=True)
    if percent >= 100:
        print()  # Newline at completion


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bitmap Subtitle OCR — Convert decoded subtitle images "
                    "into an SRT file using Tesseract.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py subs.yaml                      # Basic usage
  python main.py subs.yaml -o my_subs.srt       # Custom output path
  python main.py subs.yaml --lang fr            # French OCR (fra)
  python main.py subs.yaml --max-threads 1      # No parallel OCR
  python main.py subs.yaml --dumb               # End = next start
  python main.py subs.yaml --dump-images        # Keep PGM images
        """
    )

    parser.add_argument(
        "manifest",
        type=Path,
        help="YAML manifest listing the subtitle images and their timestamps"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output SRT file path (default: manifest name with .srt extension)"
    )
    parser.add_argument(
        "-l", "--lang",
        default=None,
        help="Subtitle language as ISO 639-1 code (e.g. 'en', 'de'), "
             "mapped to the tesseract language"
    )
    parser.add_argument(
        "--tesseract-lang",
        default=None,
        help="Tesseract language, overrides --lang (default: eng)"
    )
    parser.add_argument(
        "--tesseract-data",
        default=None,
        help="Path to tesseract data (default: tesseract's built-in path)"
    )
    parser.add_argument(
        "--tesseract-oem",
        type=int,
        default=None,
        choices=[0, 1, 2, 3],
        help="Tesseract engine mode: 0 legacy, 1 LSTM, 2 combined, 3 default"
    )
    parser.add_argument(
        "--blacklist",
        default=None,
        help="Character blacklist to improve the OCR (e.g. \"|\\/`_~<>\")"
    )
    parser.add_argument(
        "--min-width",
        type=int,
        default=None,
        help="Minimum width in pixels to consider a subpicture for OCR (default: 9)"
    )
    parser.add_argument(
        "--min-height",
        type=int,
        default=None,
        help="Minimum height in pixels to consider a subpicture for OCR (default: 1)"
    )
    parser.add_argument(
        "--dpi",
        type=int,
        default=None,
        help="DPI of the subtitle images (default: 72)"
    )
    parser.add_argument(
        "--max-threads",
        type=int,
        default=None,
        help="Number of parallel OCR engines, 0 = number of CPU cores (default: 0)"
    )
    parser.add_argument(
        "--dump-images",
        action="store_true",
        help="Dump subtitles as image files (<output>-<number>.pgm)"
    )
    parser.add_argument(
        "--dumb",
        action="store_true",
        help="Use the next subtitle's start as end time for every subtitle"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to custom config.yaml file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging and print recognized text"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except the progress bar"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    # ── Validate input ──
    if not args.manifest.exists():
        print(f"Error: Manifest not found: {args.manifest}")
        sys.exit(1)

    # ── Determine output path ──
    output_path = args.output or args.manifest.with_suffix(".srt")

    # ── Load config ──
    config = load_config(args.config)
    config.update_from_args(args)

    # ── Setup logging ──
    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else config.logging.level)
    setup_logging(level=log_level, log_file=config.logging.file)

    # ── Banner ──
    if not args.quiet:
        print_banner()
        print(f"  Input:     {args.manifest}")
        print(f"  Output:    {output_path}")
        print(f"  Language:  {config.engine.language}")
        print(f"  Threads:   {config.pool.size or 'Auto-detect'}")
        if config.engine.blacklist:
            print(f"  Blacklist: {config.engine.blacklist}")
        print()

    # ── Run pipeline ──
    try:
        source = ImageSequenceSource(args.manifest)
        pipeline = SubtitleOCRPipeline(config)
        progress_fn = print_progress if not args.quiet else None
        entries = pipeline.process(source, output_path, progress_cb=progress_fn)

        if not args.quiet:
            print(f"\n  [OK] Wrote Subtitles to: {output_path}")
            print(f"  [INFO] Total entries: {len(entries)}")

    except KeyboardInterrupt:
        print("\n\n  [WARN] Processing interrupted by user.")
        sys.exit(130)
    except EngineInitError as e:
        print(f"\n  [ERROR] Failed to initialize tesseract (OCR): {e}")
        sys.exit(1)
    except FileNotFoundError as e:
        print(f"\n  [ERROR] File error: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"\n  [ERROR] Could not write {output_path}: {e}")
        sys.exit(1)
    except RuntimeError as e:
        print(f"\n  [ERROR] Runtime error: {e}")
        sys.exit(1)
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"\n  [ERROR] Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
