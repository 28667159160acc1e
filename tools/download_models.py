#!/usr/bin/env python3
"""
Download the Res10 SSD face detector (Caffe) into models/.

Files that already exist are left alone.

Usage:
    python tools/download_models.py
    python tools/download_models.py --dest models
"""

import argparse
import logging
import os
import sys

import httpx

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

MODEL_FILES = {
    "deploy.prototxt": (
        "https://raw.githubusercontent.com/opencv/opencv/master/"
        "samples/dnn/face_detector/deploy.prototxt"
    ),
    "res10_300x300_ssd_iter_140000.caffemodel": (
        "https://raw.githubusercontent.com/opencv/opencv_3rdparty/97e4a8b/"
        "res10_300x300_ssd_iter_140000.caffemodel"
    ),
}


def download(client: httpx.Client, url: str, path: str) -> bool:
    """Stream url into path via a .part file; True on success."""
    tmp_path = path + ".part"
    try:
        logger.info(f"Downloading {os.path.basename(path)}")
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(tmp_path, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        os.replace(tmp_path, path)
    except (httpx.HTTPError, OSError) as e:
        logger.error(f"Failed to download {url}: {e}")
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        return False
    return True


def download_all(client: httpx.Client, dest: str) -> bool:
    os.makedirs(dest, exist_ok=True)

    success = True
    for name, url in MODEL_FILES.items():
        path = os.path.join(dest, name)
        if os.path.exists(path):
            logger.info(f"{path} already exists")
            continue
        success &= download(client, url, path)
    return success


def main():
    parser = argparse.ArgumentParser(description='Download face detector model files')
    parser.add_argument('--dest', type=str, default='models',
                        help='Destination directory (default: models)')
    args = parser.parse_args()

    with httpx.Client(timeout=60.0, follow_redirects=True) as client:
        success = download_all(client, args.dest)

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
