from __future__ import annotations

import logging
import os
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

from .capabilities import BLUR_MODES, detect_capabilities
from .compositor import TEMPLATES
from .config import load_config
from .export import RenderFailure
from .formatter import LANGUAGES
from .locator import InvalidLink
from .models import OUTPUT_SIZES
from .retriever import FetchExhausted
from .session import Session

CONFIG_PATH_DEFAULT = "config.yaml"


def _formats(choice: str) -> List[str]:
    return list(OUTPUT_SIZES) if choice == "both" else [choice]


def run_once(
    link: str,
    config_path: str = CONFIG_PATH_DEFAULT,
    fmt: str = "both",
    template: Optional[str] = None,
    language: Optional[str] = None,
    output_dir: Optional[str] = None,
    user_agent: Optional[str] = None,
    blur: Optional[str] = None,
) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    try:
        cfg = load_config(config_path)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    target_ua = user_agent or os.environ.get("LUMASHARE_USER_AGENT", "") or cfg.render.target_user_agent
    capabilities = detect_capabilities(target_ua, blur or cfg.render.blur)
    session = Session(cfg, capabilities)
    if template:
        session.set_template(template)
    if language:
        session.set_language(language)

    try:
        record = session.load(link)
    except InvalidLink as e:
        print(str(e))
        return 2
    except FetchExhausted as e:
        print(f"Error: {e}")
        return 1

    print(f"Event: {record.title}")
    print(f"Date: {record.formatted_date or '-'}")
    print(f"Time: {record.formatted_time or '-'}")
    if not record.image_url:
        print("No cover image found; using gradient background")

    failed = False
    for name in _formats(fmt):
        try:
            path = session.export(name, output_dir)
        except RenderFailure as e:
            print(f"Error generating {name} image: {e}")
            failed = True
            continue
        print(f"Wrote {name} image to {path}")

    return 1 if failed else 0


def main():
    import argparse

    load_dotenv(find_dotenv(usecwd=True))
    ap = argparse.ArgumentParser(description="Generate story/post share images for a Luma event")
    ap.add_argument("link", help="lu.ma or luma.com event link")
    ap.add_argument("--config", default=os.environ.get("LUMASHARE_CONFIG", CONFIG_PATH_DEFAULT))
    ap.add_argument("--format", dest="fmt", choices=[*OUTPUT_SIZES, "both"], default="both")
    ap.add_argument("--template", choices=list(TEMPLATES))
    ap.add_argument("--lang", choices=list(LANGUAGES))
    ap.add_argument("--out", dest="output_dir")
    ap.add_argument("--user-agent", help="device the images are meant for; iOS devices get the no-blur treatment")
    ap.add_argument("--blur", choices=list(BLUR_MODES), help="override render.blur from the config")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    raise SystemExit(
        run_once(
            args.link,
            config_path=args.config,
            fmt=args.fmt,
            template=args.template,
            language=args.lang,
            output_dir=args.output_dir,
            user_agent=args.user_agent,
            blur=args.blur,
        )
    )


if __name__ == "__main__":
    main()
