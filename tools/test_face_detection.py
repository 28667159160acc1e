#!/usr/bin/env python3
"""
Run the face detector once on an image and print the resulting snapshot.

This utility helps verify that:
1. The model files load with the installed OpenCV build
2. Filtering and clamping produce sensible boxes
3. The JSON matches what /faces would serve

Usage:
    python tools/test_face_detection.py --image path/to/image.jpg
    python tools/test_face_detection.py --image photo.jpg --conf 0.3 --save
"""

import argparse
import os
import sys
from datetime import datetime, timezone

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

import cv2

from inference.caffe_backend import load_backend
from models.config import ModelConfig
from models.snapshot import Snapshot
from pipeline.stages.postprocess import create_postprocess_stage
from web.api_models import serialize_snapshot


def main():
    parser = argparse.ArgumentParser(description='Test the Res10 face detector on an image')
    parser.add_argument('--image', type=str, required=True, help='Image to run detection on')
    parser.add_argument('--prototxt', type=str, default='models/deploy.prototxt')
    parser.add_argument('--model', type=str,
                        default='models/res10_300x300_ssd_iter_140000.caffemodel')
    parser.add_argument('--conf', type=float, default=0.5, help='Confidence threshold')
    parser.add_argument('--save', action='store_true',
                        help='Write an annotated copy next to the input image')
    args = parser.parse_args()

    frame = cv2.imread(args.image)
    if frame is None:
        print(f"Failed to load image: {args.image}")
        return 1

    backend = load_backend(ModelConfig(prototxt=args.prototxt, weights=args.model))
    raw = backend.infer(frame)
    height, width = frame.shape[:2]
    detections = create_postprocess_stage(args.conf).process(raw, width, height)

    snap = Snapshot(
        source=args.image,
        frame=1,
        frame_width=width,
        frame_height=height,
        detections=detections,
        generated_at=datetime.now(timezone.utc),
    )
    print(serialize_snapshot(snap), end="")
    print(f"{len(raw)} raw rows, {len(detections)} kept at conf >= {args.conf}")

    if args.save:
        for det in detections:
            x1, y1, x2, y2 = det.bbox.as_xyxy()
            cv2.rectangle(frame, (x1, y1), (x2, y2), (0, 255, 0), 2)
            cv2.putText(frame, f"{det.score:.2f}", (x1, max(y1 - 6, 12)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 0), 1)
        output_path = args.image.rsplit('.', 1)[0] + "_faces.jpg"
        cv2.imwrite(output_path, frame)
        print(f"Saved result to: {output_path}")

    backend.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
