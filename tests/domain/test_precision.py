import unittest
from unittest import TestCase

import numpy as np

from src.ndgrad.domain._config import using_config
from src.ndgrad.domain._precision import Precision, as_real_array, to_real


class TestPrecisionFromAny(TestCase):
    def test_enum_passthrough(self):
        self.assertIs(Precision.from_any(Precision.DOUBLE), Precision.DOUBLE)

    def test_string_spellings(self):
        self.assertIs(Precision.from_any("single"), Precision.SINGLE)
        self.assertIs(Precision.from_any("Float32"), Precision.SINGLE)
        self.assertIs(Precision.from_any(" double "), Precision.DOUBLE)
        self.assertIs(Precision.from_any("float64"), Precision.DOUBLE)

    def test_numpy_dtypes(self):
        self.assertIs(Precision.from_any(np.float32), Precision.SINGLE)
        self.assertIs(Precision.from_any(np.dtype("float64")), Precision.DOUBLE)

    def test_rejects_unsupported(self):
        with self.assertRaises(ValueError):
            Precision.from_any("half")
        with self.assertRaises(ValueError):
            Precision.from_any(np.int32)
        with self.assertRaises(ValueError):
            Precision.from_any(np.float16)

    def test_dtype_property(self):
        self.assertEqual(Precision.SINGLE.dtype, np.float32)
        self.assertEqual(Precision.DOUBLE.dtype, np.float64)


class TestRealConversion(TestCase):
    def test_as_real_array_uses_requested_precision(self):
        arr = as_real_array([[1, 2], [3, 4]], Precision.DOUBLE)
        self.assertEqual(arr.dtype, np.float64)
        self.assertEqual(arr.shape, (2, 2))

    def test_as_real_array_copies_source(self):
        src = np.array([1.0, 2.0], dtype=np.float32)
        arr = as_real_array(src, "single")
        src[0] = 99.0
        self.assertEqual(arr[0], 1.0)

    def test_as_real_array_defaults_to_configured_precision(self):
        with using_config(precision="double"):
            self.assertEqual(as_real_array([1.0]).dtype, np.float64)
        with using_config(precision="single"):
            self.assertEqual(as_real_array([1.0]).dtype, np.float32)

    def test_to_real_returns_numpy_scalar(self):
        v = to_real(1.5, "single")
        self.assertIsInstance(v, np.float32)
        self.assertEqual(v, np.float32(1.5))

        d = to_real(2, Precision.DOUBLE)
        self.assertIsInstance(d, np.float64)


if __name__ == "__main__":
    unittest.main()
