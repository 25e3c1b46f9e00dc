from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .config import load_config
from .errors import SheetPosterError
from .facebook_client import FacebookClient
from .google_sheets import GoogleSheetsClient
from .workflow import PostWorkflow


def load_env_files(config_path: Path | None) -> None:
    """Load environment variables from .env files."""

    # Load default .env in current working directory if present
    load_dotenv(override=False)

    # Load .env placed next to the config file if it exists
    if config_path is not None:
        config_env = config_path.parent / ".env"
        if config_env.exists():
            load_dotenv(dotenv_path=config_env, override=False)


LOGGER = logging.getLogger("sheet_poster")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Post a message to the primary page and share it to the secondary page. "
            "Without --message an unused row is taken from Google Sheets."
        )
    )
    parser.add_argument("text", nargs="?", default=None, help="Message to post (same as --message)")
    parser.add_argument("-m", "--message", default=None, help="Post this message directly, skipping the sheet")
    parser.add_argument(
        "-b",
        "--background",
        dest="background_id",
        default=None,
        help="Facebook text_format_preset_id overriding BACKGROUND_ID",
    )
    parser.add_argument(
        "--no-share",
        dest="share",
        action="store_false",
        help="With a direct message, do not share the post to the secondary page",
    )
    parser.add_argument("--config", default=None, help="Optional path to a YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = Path(args.config).expanduser().resolve() if args.config else None
    load_env_files(config_path)

    message = args.message if args.message is not None else args.text
    try:
        config = load_config(config_path)
        with FacebookClient(
            config.graph_api_version,
            config.request_timeout,
            post_base_url=config.post_base_url,
        ) as publisher:
            workflow = PostWorkflow(
                config,
                GoogleSheetsClient(config.service_account_key),
                publisher,
            )
            if message:
                result = workflow.post_direct_message(
                    message,
                    share=args.share,
                    background_id=args.background_id,
                )
            else:
                result = workflow.post_from_sheet_and_share(background_id=args.background_id)
    except (SheetPosterError, FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        detail = getattr(exc, "detail", None)
        if detail:
            print(f"Details: {json.dumps(detail, ensure_ascii=False)}", file=sys.stderr)
        LOGGER.debug("Run failed", exc_info=True)
        return 1

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
