"""
Tests for the /faces wire format produced by serialize_snapshot.
"""

import json
from datetime import datetime, timezone

from models.detection import Detection, Landmark, Rect
from models.snapshot import Snapshot
from web.api_models import SnapshotResponse, serialize_snapshot


TS = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_snapshot(detections=()):
    return Snapshot(
        source="0",
        frame=7,
        frame_width=640,
        frame_height=480,
        detections=tuple(detections),
        generated_at=TS,
    )


class TestSerializeSnapshot:
    def test_output_is_valid_json(self):
        det = Detection(id=0, bbox=Rect(1, 2, 3, 4), score=0.5, timestamp=TS)

        body = json.loads(serialize_snapshot(make_snapshot([det])))

        assert list(body.keys()) == [
            "source", "frame", "frame_width", "frame_height", "detections", "generated_at",
        ]
        assert list(body["detections"][0].keys()) == ["id", "bbox", "score", "ts"]

    def test_instants_are_utc_with_z_suffix(self):
        det = Detection(id=0, bbox=Rect(1, 2, 3, 4), score=0.5, timestamp=TS)

        body = json.loads(serialize_snapshot(make_snapshot([det])))

        assert body["generated_at"] == "2024-05-01T12:00:00Z"
        assert body["detections"][0]["ts"] == "2024-05-01T12:00:00Z"

    def test_empty_snapshot_serializes_epoch(self):
        body = json.loads(serialize_snapshot(Snapshot.empty()))

        assert body["generated_at"] == "1970-01-01T00:00:00Z"
        assert body["detections"] == []

    def test_landmarks_omitted_when_empty(self):
        det = Detection(id=0, bbox=Rect(1, 2, 3, 4), score=0.5, timestamp=TS)

        text = serialize_snapshot(make_snapshot([det]))

        assert "landmarks" not in text

    def test_landmarks_serialized_in_order(self):
        det = Detection(
            id=0,
            bbox=Rect(0, 0, 10, 10),
            score=0.9,
            timestamp=TS,
            landmarks=(Landmark(3, 4), Landmark(6, 4)),
        )

        d = json.loads(serialize_snapshot(make_snapshot([det])))["detections"][0]

        assert list(d.keys()) == ["id", "bbox", "landmarks", "score", "ts"]
        assert d["landmarks"] == [{"x": 3, "y": 4}, {"x": 6, "y": 4}]

    def test_trailing_newline_and_indent(self):
        text = serialize_snapshot(make_snapshot())

        assert text.endswith("}\n")
        assert text.startswith('{\n  "source": "0"')

    def test_response_model_from_snapshot(self):
        det = Detection(id=2, bbox=Rect(5, 6, 7, 8), score=0.8, timestamp=TS)

        resp = SnapshotResponse.from_snapshot(make_snapshot([det]))

        assert resp.frame == 7
        assert resp.detections[0].bbox.width == 7
        assert resp.detections[0].landmarks is None
