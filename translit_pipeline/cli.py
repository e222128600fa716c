from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .errors import ConversionError
from .models import LayoutConfig, TargetScript
from .ocr import OCR_QUALITY_SCALES
from .orchestrator import ConversionOptions, convert_document
from .transliterate import DEFAULT_REMOTE_TIMEOUT, DEFAULT_REMOTE_URL, AksharamukhaClient, TransliterationEngine
from .writer import DEFAULT_FONT_CANDIDATES, resolve_fontfile

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="translit-pdf",
        description="Kannada PDF/images -> Tamil PDF (text layer or OCR, then transliteration)",
    )
    parser.add_argument("inputs", nargs="+", help="One PDF, or one or more page images in order")
    parser.add_argument("-o", "--output", required=True, help="Output PDF path")
    parser.add_argument(
        "--target",
        choices=[t.value for t in TargetScript],
        default=TargetScript.TAMIL.value,
        help="Target script",
    )
    parser.add_argument("--ocr-lang", default="kan", help="OCR language code")
    parser.add_argument("--quality", choices=sorted(OCR_QUALITY_SCALES), default="fast", help="OCR render quality")
    parser.add_argument("--font", default=None, help="Target-script TrueType font (auto-detected if omitted)")
    parser.add_argument("--transcript", default=None, help="Also write a plain-text transcript here")
    parser.add_argument("--remote-url", default=DEFAULT_REMOTE_URL, help="Remote transliteration endpoint")
    parser.add_argument("--remote-timeout", type=float, default=DEFAULT_REMOTE_TIMEOUT, help="Remote call timeout (s)")
    parser.add_argument("--no-remote", action="store_true", help="Never call the remote transliteration service")
    parser.add_argument("--font-size", type=float, default=LayoutConfig.font_size, help="Output font size (pt)")
    parser.add_argument("--placeholder", default=None, help="Text drawn on pages with no content")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    font_path = args.font or resolve_fontfile(DEFAULT_FONT_CANDIDATES)
    remote = None if args.no_remote else AksharamukhaClient(args.remote_url, timeout=args.remote_timeout)
    line_height = round(args.font_size * LayoutConfig.line_height / LayoutConfig.font_size, 2)
    try:
        options = ConversionOptions(
            target_script=TargetScript(args.target),
            ocr_language=args.ocr_lang,
            ocr_quality=args.quality,
            font_path=font_path,
            layout=LayoutConfig(
                font_size=args.font_size,
                line_height=line_height,
                empty_page_placeholder=args.placeholder,
            ),
            include_transcript=bool(args.transcript),
        )
        inputs = args.inputs[0] if len(args.inputs) == 1 else args.inputs
        result = convert_document(inputs, options, engine=TransliterationEngine(remote=remote))
    except (ConversionError, ValueError) as exc:
        logger.error("Conversion failed: %s", exc)
        return 1

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.pdf_bytes)
    if args.transcript and result.transcript is not None:
        Path(args.transcript).write_text(result.transcript, encoding="utf-8")

    print("Done.")
    print(f"- Output PDF:    {out_path.resolve()}")
    if args.transcript:
        print(f"- Transcript:    {Path(args.transcript).resolve()}")
    print(f"- Pages:         {len(result.reports)} in / {len(result.output_pages)} out")
    if result.degraded_pages:
        print(f"- Untransliterated pages: {', '.join(map(str, result.degraded_pages))}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
