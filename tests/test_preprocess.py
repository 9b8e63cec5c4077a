import unittest

import numpy as np

from mango_kit.preprocess import infer_input_size, preprocess


class TestPreprocess(unittest.TestCase):
    def test_uniform_raster_resized_and_normalized(self) -> None:
        raster = np.zeros((20, 30, 3), dtype=np.uint8)
        raster[...] = (255, 0, 51)
        tensor = preprocess(raster, input_size=8)
        self.assertEqual(tensor.shape, (1, 8, 8, 3))
        self.assertEqual(tensor.dtype, np.float32)
        self.assertTrue(np.allclose(tensor[0, :, :, 0], 1.0))
        self.assertTrue(np.allclose(tensor[0, :, :, 1], 0.0))
        self.assertTrue(np.allclose(tensor[0, :, :, 2], 0.2))

    def test_same_size_is_channel_interleaved_copy(self) -> None:
        rng = np.random.default_rng(3)
        raster = rng.integers(0, 256, size=(4, 4, 3), dtype=np.uint8)
        tensor = preprocess(raster, input_size=4)
        self.assertTrue(np.allclose(tensor[0], raster.astype(np.float32) / 255.0))
        self.assertAlmostEqual(float(tensor[0, 1, 2, 1]), raster[1, 2, 1] / 255.0, places=6)

    def test_values_stay_in_unit_range(self) -> None:
        rng = np.random.default_rng(11)
        raster = rng.integers(0, 256, size=(37, 53, 3), dtype=np.uint8)
        tensor = preprocess(raster, input_size=16)
        self.assertGreaterEqual(float(tensor.min()), 0.0)
        self.assertLessEqual(float(tensor.max()), 1.0)

    def test_pure_function(self) -> None:
        rng = np.random.default_rng(5)
        raster = rng.integers(0, 256, size=(12, 9, 3), dtype=np.uint8)
        before = raster.copy()
        a = preprocess(raster, input_size=6)
        b = preprocess(raster, input_size=6)
        self.assertTrue(np.array_equal(a, b))
        self.assertTrue(np.array_equal(raster, before))

    def test_rejects_bad_shapes(self) -> None:
        with self.assertRaises(ValueError):
            preprocess(np.zeros((4, 4), dtype=np.uint8), input_size=4)
        with self.assertRaises(ValueError):
            preprocess(np.zeros((4, 4, 3), dtype=np.uint8), input_size=0)
        with self.assertRaises(TypeError):
            preprocess(None, input_size=4)  # type: ignore[arg-type]


class TestInferInputSize(unittest.TestCase):
    def test_nhwc_and_nchw(self) -> None:
        self.assertEqual(infer_input_size([1, 640, 640, 3]), 640)
        self.assertEqual(infer_input_size([1, 3, 320, 320]), 320)

    def test_dynamic_or_non_square(self) -> None:
        self.assertIsNone(infer_input_size(["batch", 3, "h", "w"]))
        self.assertIsNone(infer_input_size([1, 480, 640, 3]))
        self.assertIsNone(infer_input_size([1, 640, 640]))
        self.assertIsNone(infer_input_size(None))


if __name__ == "__main__":
    unittest.main()
