import unittest

import numpy as np

from yolo_decode.nms import NMSConfig, batched_nms, box_iou, nms


class TestNms(unittest.TestCase):
    def test_iou(self) -> None:
        box = np.array([0, 0, 10, 10])
        others = np.array([[0, 0, 10, 10], [5, 0, 15, 10], [20, 20, 30, 30], [3, 3, 3, 3]])
        iou = box_iou(box, others)
        self.assertTrue(np.allclose(iou, [1.0, 50 / 150, 0.0, 0.0]))

    def test_suppresses_above_threshold_only(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [5, 0, 15, 10]])
        scores = np.array([0.6, 0.9], dtype=np.float32)
        # IoU = 1/3
        self.assertEqual(nms(boxes, scores, NMSConfig(iou_threshold=0.3)).tolist(), [1])
        self.assertEqual(nms(boxes, scores, NMSConfig(iou_threshold=1 / 3)).tolist(), [1, 0])

    def test_ties_keep_input_order(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 0, 110, 10], [200, 0, 210, 10]])
        scores = np.array([0.5, 0.7, 0.5], dtype=np.float32)
        self.assertEqual(nms(boxes, scores, NMSConfig()).tolist(), [1, 0, 2])

        # Identical boxes with equal scores: the first one wins.
        boxes = np.array([[0, 0, 10, 10], [0, 0, 10, 10]])
        scores = np.array([0.5, 0.5], dtype=np.float32)
        self.assertEqual(nms(boxes, scores, NMSConfig()).tolist(), [0])

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(7)
        xy = rng.uniform(0, 500, size=(300, 2))
        wh = rng.uniform(10, 120, size=(300, 2))
        boxes = np.concatenate([xy, xy + wh], axis=1).astype(np.int64)
        scores = rng.uniform(0, 1, size=300).astype(np.float32)
        cfg = NMSConfig(iou_threshold=0.45)

        keep = nms(boxes, scores, cfg)
        again = nms(boxes[keep], scores[keep], cfg)
        self.assertEqual(again.tolist(), list(range(keep.size)))

    def test_score_threshold_and_max_detections(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 0, 110, 10], [200, 0, 210, 10]])
        scores = np.array([0.2, 0.7, 0.5], dtype=np.float32)
        self.assertEqual(nms(boxes, scores, NMSConfig(score_threshold=0.25)).tolist(), [1, 2])
        self.assertEqual(nms(boxes, scores, NMSConfig(max_detections=1)).tolist(), [1])

    def test_score_equal_to_floor_is_kept(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 0, 110, 10]])
        scores = np.array([0.5, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(score_threshold=float(scores[0])))
        self.assertEqual(keep.tolist(), [1, 0])

    def test_empty(self) -> None:
        keep = nms(np.empty((0, 4)), np.empty((0,)), NMSConfig())
        self.assertEqual(keep.shape, (0,))

    def test_batched_nms_per_class(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 0, 11, 10], [2, 0, 12, 10]])
        scores = np.array([0.9, 0.8, 0.7], dtype=np.float32)
        class_ids = np.array([0, 1, 0])
        self.assertEqual(batched_nms(boxes, scores, class_ids, NMSConfig()).tolist(), [0, 1])
        self.assertEqual(nms(boxes, scores, NMSConfig()).tolist(), [0])


if __name__ == "__main__":
    unittest.main()
