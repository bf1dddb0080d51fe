import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from yolo_decode.cli import build_parser, main, make_config
from yolo_decode.layout import LayoutVariant


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.dir = Path(tmpdir.name)

    def _tensor(self, name: str) -> Path:
        # (1, 4 + C, A) with one confident anchor, class 1.
        p = np.zeros((1, 6, 16), dtype=np.float32)
        p[0, :4, 2] = [320, 320, 64, 64]
        p[0, 5, 2] = 0.75
        path = self.dir / name
        np.save(path, p)
        return path

    def _run(self, argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main([str(a) for a in argv])
        return code, out.getvalue()

    def test_text_output_with_names(self) -> None:
        names = self.dir / "classes.txt"
        names.write_text("person\nball\n", encoding="utf-8")
        code, out = self._run([self._tensor("f0.npy"), "--orig-size", "1280x960", "--names", names])
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "Frame 0 - detections: 1")
        self.assertEqual(lines[1], "  ball 75% box=(576, 432, 128, 96)")

    def test_json_output_multiple_frames(self) -> None:
        paths = [self._tensor("f0.npy"), self._tensor("f1.npy")]
        code, out = self._run(paths + ["--orig-size", "640x640", "--json"])
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(len(payload), 2)
        det = payload[1]["detections"][0]
        self.assertEqual(det["class_id"], 1)
        self.assertEqual(det["label"], "id=1")
        self.assertEqual(det["box_xyxy"], [288, 288, 352, 352])

    def test_missing_tensor_is_an_error(self) -> None:
        with self.assertLogs("yolo_decode.cli", level="ERROR"):
            code, out = self._run([self.dir / "nope.npy", "--orig-size", "640x640"])
        self.assertEqual(code, 1)
        self.assertTrue(out.startswith("Frame 0 - error: Tensor file not found"))

    def test_bad_frame_does_not_drop_good_frames(self) -> None:
        bad = self.dir / "bad.npy"
        bad.write_bytes(b"\x00not a numpy file\xff" * 4)
        empty = self.dir / "empty.npy"
        empty.write_bytes(b"")
        paths = [self._tensor("f0.npy"), bad, self.dir / "missing.npy", empty, self._tensor("f4.npy")]
        with self.assertLogs("yolo_decode.cli", level="ERROR"):
            code, out = self._run(paths + ["--orig-size", "640x640"])
        self.assertEqual(code, 1)
        lines = out.splitlines()
        self.assertEqual(lines[0], "Frame 0 - detections: 1")
        self.assertTrue(lines[2].startswith("Frame 1 - error:"))
        self.assertTrue(lines[3].startswith("Frame 2 - error:"))
        self.assertTrue(lines[4].startswith("Frame 3 - error:"))
        self.assertEqual(lines[5], "Frame 4 - detections: 1")
        self.assertEqual(lines[6], "  id=1 75% box=(288, 288, 64, 64)")

    def test_bad_frame_is_flagged_in_json(self) -> None:
        bad = self.dir / "bad.npy"
        bad.write_bytes(b"garbage")
        with self.assertLogs("yolo_decode.cli", level="ERROR"):
            code, out = self._run([self._tensor("f0.npy"), bad, "--orig-size", "640x640", "--json"])
        self.assertEqual(code, 1)
        payload = json.loads(out)
        self.assertNotIn("error", payload[0])
        self.assertEqual(len(payload[0]["detections"]), 1)
        self.assertIn("error", payload[1])
        self.assertEqual(payload[1]["detections"], [])

    def test_missing_names_file_falls_back_to_ids(self) -> None:
        with self.assertLogs("yolo_decode.cli", level="WARNING"):
            code, out = self._run(
                [self._tensor("f0.npy"), "--orig-size", "640x640", "--names", self.dir / "nope.txt"]
            )
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), ["Frame 0 - detections: 1", "  id=1 75% box=(288, 288, 64, 64)"])

    def test_bad_size_exits(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                build_parser().parse_args(["f.npy", "--orig-size", "wide"])

    def test_flags_override_config_file(self) -> None:
        cfg_path = self.dir / "post.json"
        cfg_path.write_text(json.dumps({"conf_threshold": 0.5, "iou_threshold": 0.6}), encoding="utf-8")
        args = build_parser().parse_args(
            ["f.npy", "--orig-size", "640x480", "--config", str(cfg_path), "--iou", "0.3", "--imgsz", "320",
             "--layout", "objectness"]
        )
        cfg = make_config(args)
        self.assertEqual(cfg.conf_threshold, 0.5)
        self.assertEqual(cfg.iou_threshold, 0.3)
        self.assertEqual(cfg.input_size, (320, 320))
        self.assertIs(cfg.variant, LayoutVariant.OBJECTNESS_PRESENT)


if __name__ == "__main__":
    unittest.main()
