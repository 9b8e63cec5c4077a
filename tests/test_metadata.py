import tempfile
import unittest
from pathlib import Path

from mango_kit.errors import ConfigurationError
from mango_kit.metadata import ModelMetadata, load_labels
from mango_kit.postprocess import AttributeLayout


class TestLoadLabels(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "labels.txt"
        path.write_text(text, encoding="utf-8")
        return path

    def test_trims_and_drops_blank_lines(self) -> None:
        labels = load_labels(self._write("  matang \n\nmentah\r\n setengah matang\n\n"))
        self.assertEqual(labels, ("matang", "mentah", "setengah matang"))

    def test_empty_file_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_labels(self._write("\n  \n"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_labels("no/such/labels.txt")


class TestModelMetadata(unittest.TestCase):
    def test_from_nhwc_shapes(self) -> None:
        meta = ModelMetadata.from_shapes(
            [1, 640, 640, 3], [1, 8, 8400], layout="objectness", labels=("ripe", "unripe", "half_ripe")
        )
        self.assertEqual(meta.input_size, 640)
        self.assertEqual(meta.attribute_count, 8)
        self.assertEqual(meta.anchor_count, 8400)
        self.assertEqual(meta.class_count, 3)
        self.assertIs(meta.layout, AttributeLayout.OBJECTNESS)
        self.assertEqual(meta.output_shape, (1, 8, 8400))
        self.assertEqual(meta.input_shape, (1, 640, 640, 3))

    def test_nchw_input_is_accepted(self) -> None:
        meta = ModelMetadata.from_shapes([1, 3, 320, 320], [1, 6, 2100], layout="class_only", labels=("ripe", "unripe"))
        self.assertEqual(meta.input_size, 320)

    def test_layout_mismatch_rejected(self) -> None:
        # 8 attributes fit objectness + 3 classes, not class-only + 3 classes.
        with self.assertRaises(ConfigurationError):
            ModelMetadata.from_shapes([1, 640, 640, 3], [1, 8, 8400], layout="class_only", labels=("a", "b", "c"))

    def test_label_count_mismatch_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            ModelMetadata.from_shapes([1, 640, 640, 3], [1, 8, 8400], layout="objectness", labels=("a", "b"))

    def test_dynamic_shapes_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            ModelMetadata.from_shapes(["n", 3, "h", "w"], [1, 8, 8400], layout="objectness", labels=("a", "b", "c"))
        with self.assertRaises(ConfigurationError):
            ModelMetadata.from_shapes([1, 640, 640, 3], [1, 8, "anchors"], layout="objectness", labels=("a", "b", "c"))

    def test_no_labels_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            ModelMetadata.from_shapes([1, 640, 640, 3], [1, 5, 8400], layout="class_only", labels=())


if __name__ == "__main__":
    unittest.main()
