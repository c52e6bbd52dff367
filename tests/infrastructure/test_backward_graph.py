import unittest
import warnings
from unittest import TestCase

import numpy as np

from src.ndgrad.domain._config import using_config
from src.ndgrad.domain._errors import DanglingGraphWarning
from src.ndgrad.infrastructure._autograd import backward_graph
from src.ndgrad.infrastructure.functions import AddConst, MulConst, Sin, add, cos, neg, sin
from src.ndgrad.infrastructure.functions import as_constant
from src.ndgrad.infrastructure.tensor._tensor import Tensor


class _CountingSin(Sin):
    """Sin that records how often, and at which use count, backward runs."""

    def __init__(self) -> None:
        super().__init__("CountingSin")
        self.calls = 0
        self.use_counts_seen: list[int] = []

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        self.calls += 1
        self.use_counts_seen.append(y.use_count)
        super().single_backward(y, x)


def _x() -> Tensor:
    return Tensor([0.3, -1.2, 2.0], precision="double")


class TestChainRule(TestCase):
    def test_sin_of_cos(self):
        x = _x()
        y = sin(cos(x))
        y.backward()
        expected = -np.sin(x.data) * np.cos(np.cos(x.data))
        np.testing.assert_allclose(x.grad, expected)

    def test_custom_seed(self):
        x = _x()
        y = sin(x)
        y.grad = [1.0, 0.0, 2.0]
        backward_graph(y)
        np.testing.assert_allclose(x.grad, np.cos(x.data) * [1.0, 0.0, 2.0])

    def test_leaf_gradients_accumulate_across_passes(self):
        x = _x()
        sin(x).backward()
        sin(x).backward()
        np.testing.assert_allclose(x.grad, 2 * np.cos(x.data))

    def test_use_counts_return_to_zero(self):
        x = _x()
        h = sin(x)
        y = add(cos(h), h)
        self.assertEqual(h.use_count, 2)
        y.backward()
        self.assertEqual(h.use_count, 0)
        self.assertEqual(x.use_count, 0)


class TestFanOut(TestCase):
    def test_leaf_fan_out(self):
        x = _x()
        z = add(sin(x), cos(x))
        with warnings.catch_warnings():
            warnings.simplefilter("error", DanglingGraphWarning)
            z.backward()
        np.testing.assert_allclose(x.grad, np.cos(x.data) - np.sin(x.data))

    def test_same_tensor_twice_in_one_call(self):
        x = _x()
        h = sin(x)
        y = add(h, h)
        y.backward()
        np.testing.assert_allclose(h.grad, [2.0, 2.0, 2.0])
        np.testing.assert_allclose(x.grad, 2 * np.cos(x.data))

    def test_non_leaf_producer_runs_once_with_full_gradient(self):
        x = _x()
        f = _CountingSin()
        h = f(x)
        a = AddConst()(h, as_constant(1.0, h))
        b = MulConst()(h, as_constant(2.0, h))
        z = add(a, b)
        self.assertEqual(h.use_count, 2)

        returned = backward_graph_with_seed(z)

        self.assertEqual(returned, ())
        self.assertEqual(f.calls, 1)
        self.assertEqual(f.use_counts_seen, [0])
        np.testing.assert_allclose(h.grad, [3.0, 3.0, 3.0])
        np.testing.assert_allclose(x.grad, 3 * np.cos(x.data))

    def test_use_count_decrements_per_consumer(self):
        x = _x()
        f = _CountingSin()
        h = f(x)
        add_one = AddConst()
        double = MulConst()
        a = add_one(h, as_constant(1.0, h))
        b = double(h, as_constant(2.0, h))
        self.assertEqual(h.use_count, 2)

        a.grad = np.ones(3)
        add_one.backward(a)
        self.assertEqual(h.use_count, 1)
        self.assertEqual(f.calls, 0)

        b.grad = np.ones(3)
        double.backward(b)
        self.assertEqual(h.use_count, 0)
        np.testing.assert_allclose(h.grad, [3.0, 3.0, 3.0])


def backward_graph_with_seed(y: Tensor) -> tuple:
    y.grad = np.ones(y.size)
    return backward_graph(y)


class TestDanglingBranches(TestCase):
    def _graph(self):
        x = _x()
        h = sin(x)
        used = cos(h)
        neg(h)
        return x, h, used

    def test_warns_and_reports_pending_tensor(self):
        x, h, used = self._graph()
        with using_config(warn_on_dangling=True):
            with self.assertWarns(DanglingGraphWarning):
                dangling = backward_graph_with_seed(used)
        self.assertEqual(len(dangling), 1)
        self.assertIs(dangling[0], h)
        self.assertEqual(h.use_count, 1)
        self.assertTrue(np.all(x.grad == 0))

    def test_warning_can_be_disabled(self):
        _, h, used = self._graph()
        with using_config(warn_on_dangling=False):
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                dangling = backward_graph_with_seed(used)
        self.assertFalse(any(issubclass(w.category, DanglingGraphWarning) for w in caught))
        self.assertIs(dangling[0], h)


class TestGraphCut(TestCase):
    def test_cut_stops_traversal(self):
        x = _x()
        f = Sin()
        h = f(x)
        h.cut_graph()
        y = cos(h)
        y.backward()

        np.testing.assert_allclose(h.grad, -np.sin(h.data))
        self.assertTrue(np.all(x.grad == 0))
        self.assertEqual(len(f.previous_inputs), 1)

    def test_segments_can_be_propagated_separately(self):
        x = _x()
        h = sin(x)
        head = h.producer
        h.cut_graph()
        cos(h).backward()

        head.backward(h)
        np.testing.assert_allclose(x.grad, -np.sin(h.data) * np.cos(x.data))


class TestMiniBatchReuse(TestCase):
    def test_one_function_many_calls_any_order(self):
        f = Sin()
        x1 = Tensor([0.1, 0.2], precision="double")
        x2 = Tensor([1.1, 1.2], precision="double")
        y1 = f(x1)
        y2 = f(x2)
        self.assertEqual(len(f.previous_inputs), 2)

        y2.backward()
        y1.backward()
        np.testing.assert_allclose(x1.grad, np.cos(x1.data))
        np.testing.assert_allclose(x2.grad, np.cos(x2.data))
        self.assertEqual(f.previous_inputs, [])


if __name__ == "__main__":
    unittest.main()
