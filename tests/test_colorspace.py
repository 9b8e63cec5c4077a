import unittest

import numpy as np

from mango_kit.colorspace import frame_from_i420, frame_from_nv21, yuv420_to_rgb
from mango_kit.errors import FrameConversionError
from mango_kit.types import Plane, RawFrame


def _uniform_frame(width: int, height: int, y: int, u: int, v: int) -> RawFrame:
    cw, ch = (width + 1) // 2, (height + 1) // 2
    return RawFrame(
        width=width,
        height=height,
        planes=(
            Plane(bytes([y]) * (width * height), row_stride=width),
            Plane(bytes([u]) * (cw * ch), row_stride=cw),
            Plane(bytes([v]) * (cw * ch), row_stride=cw),
        ),
    )


class TestYuv420ToRgb(unittest.TestCase):
    def test_gray_maps_to_gray(self) -> None:
        rgb = yuv420_to_rgb(_uniform_frame(6, 4, y=100, u=128, v=128))
        self.assertEqual(rgb.shape, (4, 6, 3))
        self.assertEqual(rgb.dtype, np.uint8)
        self.assertTrue(np.all(rgb == 100))

    def test_saturated_red_is_clamped(self) -> None:
        # r = 76 + 1.402*127 -> 254, g and b go negative and clamp to 0.
        rgb = yuv420_to_rgb(_uniform_frame(2, 2, y=76, u=84, v=255))
        self.assertEqual(rgb[0, 0].tolist(), [254, 0, 0])

    def test_random_padded_frame_keeps_size_and_range(self) -> None:
        rng = np.random.default_rng(7)
        width, height = 7, 5
        y_stride, c_stride = 9, 6
        frame = RawFrame(
            width=width,
            height=height,
            planes=(
                Plane(rng.integers(0, 256, y_stride * height, dtype=np.uint8).tobytes(), row_stride=y_stride),
                Plane(rng.integers(0, 256, c_stride * 3, dtype=np.uint8).tobytes(), row_stride=c_stride),
                Plane(rng.integers(0, 256, c_stride * 3, dtype=np.uint8).tobytes(), row_stride=c_stride),
            ),
        )
        rgb = yuv420_to_rgb(frame)
        self.assertEqual(rgb.shape, (height, width, 3))
        self.assertGreaterEqual(int(rgb.min()), 0)
        self.assertLessEqual(int(rgb.max()), 255)

    def test_chroma_is_shared_by_2x2_blocks(self) -> None:
        width, height = 4, 2
        frame = RawFrame(
            width=width,
            height=height,
            planes=(
                Plane(bytes([128]) * 8, row_stride=4),
                Plane(bytes([128, 128]), row_stride=2),
                Plane(bytes([128, 228]), row_stride=2),
            ),
        )
        rgb = yuv420_to_rgb(frame)
        left, right = rgb[:, :2], rgb[:, 2:]
        self.assertTrue(np.all(left == 128))
        self.assertTrue(np.all(right[..., 0] == right[0, 0, 0]))
        self.assertGreater(int(right[0, 0, 0]), 128)

    def test_interleaved_chroma_matches_planar(self) -> None:
        width, height = 4, 2
        y = bytes([10, 60, 110, 160, 20, 70, 120, 170])
        planar = frame_from_i420(y + bytes([10, 200]) + bytes([50, 150]), width, height)
        interleaved = frame_from_nv21(y + bytes([50, 10, 150, 200]), width, height)
        self.assertEqual(interleaved.planes[1].pixel_stride, 2)
        self.assertTrue(np.array_equal(yuv420_to_rgb(planar), yuv420_to_rgb(interleaved)))

    def test_short_plane_skips_out_of_range_pixels(self) -> None:
        width, height = 4, 4
        frame = RawFrame(
            width=width,
            height=height,
            planes=(
                Plane(bytes([200]) * (width * height - 3), row_stride=width),
                Plane(bytes([128]) * 4, row_stride=2),
                Plane(bytes([128]) * 4, row_stride=2),
            ),
        )
        rgb = yuv420_to_rgb(frame)
        self.assertEqual(rgb.shape, (4, 4, 3))
        self.assertTrue(np.all(rgb[3, 1:] == 0))
        self.assertTrue(np.all(rgb[:3] == 200))
        self.assertTrue(np.all(rgb[3, 0] == 200))

    def test_empty_chroma_yields_blank_raster(self) -> None:
        frame = RawFrame(
            width=2,
            height=2,
            planes=(Plane(bytes([90]) * 4, row_stride=2), Plane(b"", row_stride=1), Plane(b"", row_stride=1)),
        )
        rgb = yuv420_to_rgb(frame)
        self.assertEqual(rgb.shape, (2, 2, 3))
        self.assertTrue(np.all(rgb == 0))

    def test_missing_planes_rejected(self) -> None:
        frame = RawFrame(width=2, height=2, planes=(Plane(bytes(4), row_stride=2),))
        with self.assertRaises(FrameConversionError):
            yuv420_to_rgb(frame)

    def test_plane_longer_than_stride_times_rows_rejected(self) -> None:
        frame = _uniform_frame(4, 4, 100, 128, 128)
        bad = RawFrame(
            width=4,
            height=4,
            planes=(Plane(bytes(17), row_stride=4), frame.planes[1], frame.planes[2]),
        )
        with self.assertRaises(FrameConversionError):
            yuv420_to_rgb(bad)

    def test_zero_size_rejected(self) -> None:
        with self.assertRaises(FrameConversionError):
            yuv420_to_rgb(RawFrame(width=0, height=2, planes=_uniform_frame(2, 2, 0, 0, 0).planes))

    def test_i420_buffer_too_short_rejected(self) -> None:
        with self.assertRaises(FrameConversionError):
            frame_from_i420(bytes(5), 4, 2)


if __name__ == "__main__":
    unittest.main()
