import unittest

import numpy as np

from mango_kit.tensor import OutputTensor


class TestOutputTensor(unittest.TestCase):
    def setUp(self) -> None:
        # 6 attributes x 4 anchors; value encodes (attribute, anchor).
        raw = np.arange(24, dtype=np.float32).reshape(1, 6, 4)
        self.tensor = OutputTensor(raw)

    def test_shape_drops_batch_axis(self) -> None:
        self.assertEqual(self.tensor.shape, (6, 4))
        self.assertEqual(self.tensor.attribute_count, 6)
        self.assertEqual(self.tensor.anchor_count, 4)
        self.assertEqual(OutputTensor(np.zeros((6, 4))).shape, (6, 4))

    def test_at_reads_attribute_anchor(self) -> None:
        self.assertEqual(self.tensor.at(0, 0), 0.0)
        self.assertEqual(self.tensor.at(2, 3), 11.0)
        self.assertEqual(self.tensor.at(5, 3), 23.0)

    def test_at_is_bounds_checked(self) -> None:
        for attribute, anchor in ((6, 0), (-1, 0), (0, 4), (0, -1)):
            with self.subTest(attribute=attribute, anchor=anchor):
                with self.assertRaises(IndexError):
                    self.tensor.at(attribute, anchor)

    def test_rows_and_row(self) -> None:
        self.assertEqual(self.tensor.rows(4, 6).shape, (2, 4))
        np.testing.assert_array_equal(self.tensor.row(1), [4.0, 5.0, 6.0, 7.0])
        with self.assertRaises(IndexError):
            self.tensor.rows(5, 7)
        with self.assertRaises(IndexError):
            self.tensor.row(6)

    def test_rejects_batches_and_bad_rank(self) -> None:
        with self.assertRaises(ValueError):
            OutputTensor(np.zeros((2, 6, 4)))
        with self.assertRaises(ValueError):
            OutputTensor(np.zeros((24,)))


if __name__ == "__main__":
    unittest.main()
