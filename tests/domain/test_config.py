import unittest
from unittest import TestCase

import numpy as np

from src.ndgrad.domain._config import (
    get_config,
    set_default_precision,
    set_warn_on_dangling,
    using_config,
)
from src.ndgrad.domain._precision import Precision
from src.ndgrad.infrastructure.tensor._tensor import Tensor


class TestConfig(TestCase):
    def setUp(self) -> None:
        cfg = get_config()
        self._saved = (cfg.precision, cfg.warn_on_dangling)

    def tearDown(self) -> None:
        cfg = get_config()
        cfg.precision, cfg.warn_on_dangling = self._saved

    def test_set_default_precision_affects_new_tensors(self):
        set_default_precision("double")
        self.assertIs(get_config().precision, Precision.DOUBLE)
        self.assertEqual(Tensor([1.0, 2.0]).dtype, np.float64)

        set_default_precision(Precision.SINGLE)
        self.assertEqual(Tensor([1.0, 2.0]).dtype, np.float32)

    def test_explicit_precision_overrides_default(self):
        set_default_precision("single")
        self.assertEqual(Tensor([1.0], precision="double").dtype, np.float64)

    def test_set_warn_on_dangling(self):
        set_warn_on_dangling(False)
        self.assertFalse(get_config().warn_on_dangling)
        set_warn_on_dangling(1)
        self.assertIs(get_config().warn_on_dangling, True)

    def test_using_config_restores_on_exit(self):
        before = get_config().precision
        with using_config(precision="double", warn_on_dangling=False) as cfg:
            self.assertIs(cfg.precision, Precision.DOUBLE)
            self.assertFalse(cfg.warn_on_dangling)
        self.assertIs(get_config().precision, before)
        self.assertEqual(get_config().warn_on_dangling, self._saved[1])

    def test_using_config_restores_on_error(self):
        before = get_config().precision
        with self.assertRaises(RuntimeError):
            with using_config(precision="double"):
                raise RuntimeError("boom")
        self.assertIs(get_config().precision, before)

    def test_using_config_rejects_unknown_field(self):
        with self.assertRaises(AttributeError):
            with using_config(device="cuda"):
                pass


if __name__ == "__main__":
    unittest.main()
