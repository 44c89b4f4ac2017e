import unittest

import numpy as np

from yolo_edge.errors import PreconditionFailure
from yolo_edge.letterbox import PreprocessRecipe, compute_letterbox, letterbox, scale_detections, to_blob
from yolo_edge.types import Detection


class TestComputeLetterbox(unittest.TestCase):
    def test_landscape(self) -> None:
        t = compute_letterbox(640, 480, target_size=480, stride=32)
        self.assertAlmostEqual(t.scale, 0.75)
        self.assertEqual(t.resized_size, (480, 360))
        self.assertEqual(t.padded_size, (480, 480))
        self.assertEqual((t.pad_x, t.pad_y), (0.0, 60.0))
        self.assertEqual(t.border, (60, 60, 0, 0))

    def test_portrait(self) -> None:
        t = compute_letterbox(300, 500)
        self.assertEqual(t.resized_size, (288, 480))
        self.assertEqual((t.pad_x, t.pad_y), (96.0, 0.0))

    def test_odd_padding_puts_remainder_bottom_right(self) -> None:
        t = compute_letterbox(481, 300)
        self.assertEqual(t.resized_size, (480, 299))
        self.assertEqual(t.border, (90, 91, 0, 0))
        self.assertEqual(t.pad_y, 90.0)

    def test_target_rounded_up_to_stride(self) -> None:
        t = compute_letterbox(100, 100, target_size=500, stride=32)
        self.assertEqual(t.resized_size, (500, 500))
        self.assertEqual(t.padded_size, (512, 512))
        self.assertEqual(t.border, (6, 6, 6, 6))

    def test_zero_dimension_rejected(self) -> None:
        with self.assertRaises(PreconditionFailure):
            compute_letterbox(0, 480)
        with self.assertRaises(PreconditionFailure):
            compute_letterbox(640, 0)


class TestLetterboxImage(unittest.TestCase):
    def test_resize_and_pad(self) -> None:
        img = np.zeros((300, 481, 3), dtype=np.uint8)
        t = compute_letterbox(481, 300)
        out = letterbox(img, t, pad_value=114)
        self.assertEqual(out.shape, (480, 480, 3))
        self.assertTrue(np.all(out[0] == 114))
        self.assertTrue(np.all(out[-1] == 114))
        self.assertTrue(np.all(out[240] == 0))

    def test_to_blob(self) -> None:
        img = np.zeros((32, 32, 3), dtype=np.uint8)
        img[..., 2] = 255  # red in BGR
        blob = to_blob(img)
        self.assertEqual(blob.shape, (1, 3, 32, 32))
        self.assertEqual(blob.dtype, np.float32)
        self.assertTrue(np.allclose(blob[0, 0], 1.0))
        self.assertTrue(np.allclose(blob[0, 1:], 0.0))

    def test_recipe_matches_to_blob(self) -> None:
        recipe = PreprocessRecipe(target_size=480)
        self.assertEqual(
            recipe.as_ncnn2table_args(),
            ["mean=[0,0,0]", "norm=[0.003922,0.003922,0.003922]", "shape=[480,480,3]", "pixel=RGB"],
        )

    def test_recipe_shape_is_padded_input(self) -> None:
        recipe = PreprocessRecipe(target_size=500, stride=32)
        padded = compute_letterbox(100, 100, target_size=500, stride=32).padded_size
        self.assertEqual(recipe.input_size, padded[0])
        self.assertIn("shape=[512,512,3]", recipe.as_ncnn2table_args())


class TestScaleDetections(unittest.TestCase):
    def test_round_trip_inside_image(self) -> None:
        rng = np.random.default_rng(3)
        for w, h in [(640, 480), (300, 500), (481, 300), (1920, 1080)]:
            t = compute_letterbox(w, h)
            for _ in range(50):
                x0 = rng.uniform(0, w - 2)
                y0 = rng.uniform(0, h - 2)
                x1 = rng.uniform(x0, w - 1)
                y1 = rng.uniform(y0, h - 1)
                px0, py0 = t.to_padded(x0, y0)
                px1, py1 = t.to_padded(x1, y1)
                det = Detection(px0, py0, px1 - px0, py1 - py0, label=0, probability=0.5)

                scale_detections([det], t, (w, h))

                got = det.as_xyxy()
                self.assertTrue(np.allclose(got, (x0, y0, x1, y1), atol=1e-6))
                self.assertTrue(0 <= got[0] <= got[2] <= w - 1)
                self.assertTrue(0 <= got[1] <= got[3] <= h - 1)

    def test_clamps_to_image_bounds(self) -> None:
        t = compute_letterbox(640, 480)  # pad_y = 60
        det = Detection(x=-10.0, y=10.0, width=500.0, height=470.0, label=1, probability=0.9)
        out = scale_detections([det], t, (640, 480))
        self.assertIs(out[0], det)
        x0, y0, x1, y1 = det.as_xyxy()
        self.assertEqual((x0, y0), (0.0, 0.0))
        self.assertEqual((x1, y1), (639.0, 479.0))
        self.assertGreaterEqual(det.width, 0.0)
        self.assertGreaterEqual(det.height, 0.0)

    def test_nan_corner_clamped_to_upper_bound(self) -> None:
        t = compute_letterbox(640, 480)
        det = Detection(x=float("nan"), y=100.0, width=20.0, height=20.0, label=0, probability=0.9)
        scale_detections([det], t, (640, 480))
        x0, y0, x1, y1 = det.as_xyxy()
        self.assertEqual((x0, x1), (639.0, 639.0))
        self.assertTrue(0.0 <= y0 <= y1 <= 479.0)


if __name__ == "__main__":
    unittest.main()
