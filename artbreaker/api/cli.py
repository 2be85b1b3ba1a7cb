"""
Terminal adapter for the Artbreaker image service.

Architectural role:
- Exposes catalog listing, optional upload, and one generation per invocation.
- Renders progress callbacks as status lines (the progress sink).
- Delegates all remote work to `artbreaker.image.service`.

Request lifecycle (one invocation):
1. Parse arguments.
2. `--list-paintings` prints the catalog and exits.
3. `--upload FILE` uploads a local image and uses its URL as the source;
   otherwise `--source` (catalog id, file name, or URL) is used.
4. Run the generation, printing one line per progress update.
5. Print the result URL.

Error handling strategy:
- Core failures are printed to stderr and produce exit code 1.
- Keyboard interrupts produce exit code 130 without traceback output.
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import logging
import os
import sys

from artbreaker.image.catalog import PAINTINGS
from artbreaker.image.errors import ArtbreakerError
from artbreaker.image.models import GenerationRequest
from artbreaker.image.provider_config import DEFAULT_MODEL, DEFAULT_OUTPUT_FORMAT
from artbreaker.image.service import ImageGenerationService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Edit famous paintings with FLUX.1-Kontext")
    parser.add_argument("prompt", nargs="?", help="Creative instruction for the edit")
    parser.add_argument("--source", default=None, help="Painting id, painting file name, or image URL")
    parser.add_argument("--upload", default=None, metavar="FILE", help="Local image to upload as the source")
    parser.add_argument("--model", default=DEFAULT_MODEL)
    parser.add_argument("--format", dest="output_format", default=DEFAULT_OUTPUT_FORMAT)
    parser.add_argument("--no-translation", action="store_true", help="Disable prompt translation")
    parser.add_argument("--list-paintings", action="store_true", help="List catalog paintings and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def print_progress(update):
    """Render one progress update as a single status line."""
    line = f"[{update.status.value}]"
    if update.progress is not None:
        line += f" {update.progress:.0f}%"
    if update.message:
        line += f" {update.message}"
    print(line, flush=True)


def main(argv=None, service=None) -> int:
    """
    Run one CLI invocation and return the process exit code.

    Input validation behavior:
    - A prompt is required unless `--list-paintings` is given.
    - Exactly one of `--source` / `--upload` is required.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_paintings:
        for painting in PAINTINGS:
            print(f"{painting.id:<20} {painting.title} ({painting.artist}, {painting.period})")
        return 0

    if not args.prompt or not args.prompt.strip():
        parser.error("a prompt is required")
    if bool(args.source) == bool(args.upload):
        parser.error("pass exactly one of --source or --upload")

    try:
        service = service or ImageGenerationService()

        source = args.source
        if args.upload:
            with open(args.upload, "rb") as f:
                file_bytes = f.read()
            asset = service.upload_asset(file_bytes, os.path.basename(args.upload))
            print(f"Uploaded {asset.title}: {asset.url}")
            source = asset.url

        request = GenerationRequest(
            source_ref=source,
            prompt=args.prompt.strip(),
            model=args.model,
            output_format=args.output_format,
            enable_translation=not args.no_translation,
        )
        image_url = service.generate(request, on_progress=print_progress)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 130

    except (ArtbreakerError, OSError, ValueError) as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    print(image_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
