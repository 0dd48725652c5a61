"""
Upload local image files through the upload relay and add them to the
admin image library.
"""

from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from photosite.dependencies import get_content_service, get_record_store, get_upload_client
from photosite.uploads import UploadFile

logger = logging.getLogger("upload_library_images")


def load_file(path: Path) -> UploadFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return UploadFile(
        name=path.name,
        content_type=content_type or "application/octet-stream",
        data=path.read_bytes(),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upload images into the image library")
    parser.add_argument("paths", nargs="+", type=Path, help="Image files to upload")
    parser.add_argument("--folder", default=None, help="Object key prefix on the relay")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    client = get_upload_client()
    if client is None:
        print("Set UPLOAD_RELAY_URL or STORE_URL to locate the upload relay", file=sys.stderr)
        return 1
    content = get_content_service(get_record_store())

    files = [load_file(path) for path in args.paths]
    failures = 0
    for file, result in zip(files, client.upload_many(files, folder=args.folder)):
        if not result.success:
            logger.error("%s: %s", file.name, result.error)
            failures += 1
            continue
        if content.add_library_image(file.name, result.url, file.size) is None:
            logger.error("%s: uploaded to %s but not added to the library", file.name, result.url)
            failures += 1
            continue
        logger.info("%s -> %s", file.name, result.url)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
