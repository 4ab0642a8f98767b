from __future__ import annotations

import argparse
import json
from typing import List, Optional

from exif_harvest.services.config import get_settings
from exif_harvest.services.store import MetadataStore


EXAMPLES = """e.g.
 $ exif-lookup 04057962cae0c5952196a2eceb6a5715
 $ exif-lookup 04057962cae0c5952196a2eceb6a5715 ISO"""


def _open_store() -> MetadataStore:
    settings = get_settings()
    return MetadataStore.from_url(settings.redis_url, key_prefix=settings.key_prefix)


def lookup_key(key: str) -> None:
    with _open_store() as store:
        data = store.get_all(key)
    if data is None:
        print(f"key:[{key}] not found")
    else:
        print(f"results: {json.dumps(data, indent=2)}")


def lookup_key_tag(key: str, tag: str) -> None:
    with _open_store() as store:
        value = store.get_field(key, tag)
    if value is None:
        print(f"key:[{key}] with tag:[{tag}] not found")
    else:
        print(f"results: {json.dumps(value, indent=2)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exif-lookup",
        description="Look up stored EXIF metadata by image hash",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("key", nargs="?", help="Image content hash (ETag)")
    parser.add_argument("tag", nargs="?", help="Single EXIF field to print, e.g. ISO")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.key is None:
        parser.print_help()
    elif args.tag is None:
        lookup_key(args.key)
    else:
        lookup_key_tag(args.key, args.tag)


if __name__ == "__main__":
    main()
