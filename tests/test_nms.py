import unittest

import numpy as np

from yolo_edge.nms import NMSConfig, box_iou, nms_sorted, nms_sorted_indices
from yolo_edge.sort import sort_detections
from yolo_edge.types import Detection


class TestBoxIou(unittest.TestCase):
    def test_identical(self) -> None:
        a = Detection(0, 0, 10, 10, 0, 0.9)
        self.assertAlmostEqual(box_iou(a, a), 1.0)

    def test_disjoint(self) -> None:
        a = Detection(0, 0, 10, 10, 0, 0.9)
        b = Detection(20, 20, 5, 5, 0, 0.8)
        self.assertEqual(box_iou(a, b), 0.0)

    def test_partial(self) -> None:
        a = Detection(0, 0, 10, 10, 0, 0.9)
        b = Detection(2.5, 0, 10, 10, 0, 0.8)
        self.assertAlmostEqual(box_iou(a, b), 0.6)

    def test_zero_area_boxes(self) -> None:
        a = Detection(5, 5, 0, 0, 0, 0.9)
        self.assertEqual(box_iou(a, a), 0.0)
        b = Detection(5, 5, 0, 10, 0, 0.8)
        self.assertEqual(box_iou(a, b), 0.0)


class TestNmsSorted(unittest.TestCase):
    def test_suppression(self) -> None:
        high = Detection(0, 0, 10, 10, label=0, probability=0.9)
        low = Detection(2.5, 0, 10, 10, label=0, probability=0.8)  # IoU 0.6
        kept = nms_sorted([high, low], NMSConfig(iou_threshold=0.45))
        self.assertEqual(kept, [high])
        self.assertIs(kept[0], high)

    def test_class_aware_vs_agnostic(self) -> None:
        a = Detection(10, 10, 50, 50, label=0, probability=0.9)
        b = Detection(10, 10, 50, 50, label=1, probability=0.8)

        per_class = nms_sorted([a, b], NMSConfig(iou_threshold=0.45, class_agnostic=False))
        agnostic = nms_sorted([a, b], NMSConfig(iou_threshold=0.45, class_agnostic=True))

        self.assertEqual(per_class, [a, b])
        self.assertEqual(agnostic, [a])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        a = Detection(0, 0, 10, 10, 0, 0.9)
        b = Detection(0, 0, 10, 5, 0, 0.8)  # IoU exactly 0.5
        self.assertEqual(len(nms_sorted([a, b], NMSConfig(iou_threshold=0.5))), 2)

    def test_only_kept_boxes_suppress(self) -> None:
        # b is suppressed by a; c overlaps b but not a, so c survives.
        a = Detection(0, 0, 10, 10, 0, 0.9)
        b = Detection(5, 0, 10, 10, 0, 0.8)
        c = Detection(10, 0, 10, 10, 0, 0.7)
        kept = nms_sorted([a, b, c], NMSConfig(iou_threshold=0.2))
        self.assertEqual(kept, [a, c])

    def test_zero_area_candidates_survive(self) -> None:
        a = Detection(5, 5, 0, 0, 0, 0.9)
        b = Detection(5, 5, 0, 0, 0, 0.8)
        self.assertEqual(len(nms_sorted([a, b], NMSConfig())), 2)

    def test_empty(self) -> None:
        self.assertEqual(nms_sorted([], NMSConfig()), [])
        self.assertEqual(nms_sorted_indices(np.zeros((0, 4)), None, NMSConfig()).shape, (0,))

    def test_invariants_random(self) -> None:
        rng = np.random.default_rng(7)
        for agnostic in (False, True):
            dets = [
                Detection(
                    float(rng.uniform(0, 400)),
                    float(rng.uniform(0, 400)),
                    float(rng.uniform(5, 80)),
                    float(rng.uniform(5, 80)),
                    label=int(rng.integers(0, 3)),
                    probability=float(rng.uniform(0.25, 1.0)),
                )
                for _ in range(400)
            ]
            sort_detections(dets)
            cfg = NMSConfig(iou_threshold=0.45, class_agnostic=agnostic)

            kept = nms_sorted(dets, cfg)

            self.assertLessEqual(len(kept), len(dets))
            positions = [dets.index(k) for k in kept]
            self.assertEqual(positions, sorted(positions))
            for i, a in enumerate(kept):
                for b in kept[i + 1:]:
                    if agnostic or a.label == b.label:
                        self.assertLessEqual(box_iou(a, b), 0.45 + 1e-6)

    def test_indices_form(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10], [50, 50, 10, 10]], dtype=np.float32)
        labels = np.array([0, 0, 0])
        keep = nms_sorted_indices(boxes, labels, NMSConfig(iou_threshold=0.45))
        self.assertEqual(keep.tolist(), [0, 2])


if __name__ == "__main__":
    unittest.main()
