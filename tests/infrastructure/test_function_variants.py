import unittest
from unittest import TestCase

import numpy as np

from src.ndgrad.domain._errors import GraphError
from src.ndgrad.domain._function import IFunction
from src.ndgrad.infrastructure._function import (
    DualInputFunction,
    NeedPreviousInputFunction,
    SingleInputFunction,
)
from src.ndgrad.infrastructure.functions import Add, Sin
from src.ndgrad.infrastructure.tensor._tensor import Tensor


class _Lookup(NeedPreviousInputFunction):
    """Integer-index table lookup; gradient flows only into the table."""

    def __init__(self, vocab: int, dim: int, name: str = "Lookup") -> None:
        super().__init__(name)
        self.W = Tensor(np.arange(vocab * dim).reshape(vocab, dim))
        self.register_parameter("W", self.W)

    def previous_forward(self, x: Tensor) -> Tensor:
        ids = x.data.astype(int)
        rows = self.W.to_numpy()[0][ids]
        return Tensor(
            rows.reshape(-1),
            shape=x.shape + (self.W.shape[1],),
            batch_count=x.batch_count,
            precision=self.W.dtype,
        )

    def previous_backward(self, grad_y: np.ndarray, x: Tensor):
        ids = x.data.astype(int)
        np.add.at(self.W.grad.reshape(self.W.shape), ids, grad_y.reshape(ids.size, -1))
        return None


class _Square(NeedPreviousInputFunction):
    def previous_forward(self, x: Tensor) -> np.ndarray:
        return x.data * x.data

    def previous_backward(self, grad_y: np.ndarray, x: Tensor) -> np.ndarray:
        return 2 * x.data * grad_y


class _Twice(SingleInputFunction):
    def single_forward(self, x: Tensor) -> np.ndarray:
        return 2 * x.data

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        x._accumulate_grad_(2 * y.grad)


class _Hypot(DualInputFunction):
    def dual_forward(self, a: Tensor, b: Tensor) -> np.ndarray:
        return np.hypot(a.data, b.data)

    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        a._accumulate_grad_(a.data / y.data * y.grad)
        b._accumulate_grad_(b.data / y.data * y.grad)


class TestForwardBookkeeping(TestCase):
    def test_forward_stamps_producer_and_records_call(self):
        f = _Twice()
        x = Tensor([1.0, 2.0])
        y = f(x)

        self.assertIs(y.producer, f)
        self.assertEqual(len(f.previous_inputs), 1)
        self.assertIs(f.previous_inputs[0].inputs[0], x)
        self.assertIs(y._get_ctx(), f.previous_inputs[0])
        self.assertEqual(x.use_count, 1)
        np.testing.assert_allclose(y.data, [2.0, 4.0])

    def test_output_layout_follows_input(self):
        x = Tensor(np.ones((3, 2, 2)), batch_count=3)
        y = _Twice()(x)
        self.assertEqual(y.shape, (2, 2))
        self.assertEqual(y.batch_count, 3)
        self.assertEqual(y.dtype, x.dtype)

    def test_repeated_input_counts_twice(self):
        x = Tensor([1.0])
        Add()(x, x)
        self.assertEqual(x.use_count, 2)

    def test_default_name_is_class_name(self):
        self.assertEqual(_Twice().name, "_Twice")
        self.assertEqual(_Twice("double").name, "double")

    def test_conforms_to_ifunction(self):
        self.assertIsInstance(_Twice(), IFunction)

    def test_arity_and_type_checks(self):
        x = Tensor([1.0])
        with self.assertRaises(GraphError):
            _Twice()(x, x)
        with self.assertRaises(GraphError):
            _Hypot()(x)
        with self.assertRaises(TypeError):
            _Twice()(np.array([1.0]))
        with self.assertRaises(TypeError):
            _Hypot()(x, 1.0)

    def test_predict_records_nothing(self):
        f = _Twice()
        x = Tensor([1.0, 2.0])
        y = f.predict(x)
        self.assertIsNone(y.producer)
        self.assertEqual(f.previous_inputs, [])
        self.assertEqual(x.use_count, 0)
        np.testing.assert_allclose(y.data, [2.0, 4.0])

    def test_clear_history(self):
        f = _Twice()
        f(Tensor([1.0]))
        f(Tensor([2.0]))
        f.clear_history()
        self.assertEqual(f.previous_inputs, [])


class TestBackwardDispatch(TestCase):
    def test_backward_accumulates_and_decrements(self):
        f = _Twice()
        x = Tensor([1.0, 2.0])
        x.grad = [10.0, 10.0]
        y = f(x)
        y.grad = [1.0, 1.0]

        inputs = f.backward(y)
        self.assertEqual(inputs, (x,))
        np.testing.assert_allclose(x.grad, [12.0, 12.0])
        self.assertEqual(x.use_count, 0)
        self.assertEqual(f.previous_inputs, [])

    def test_dual_backward(self):
        a = Tensor([3.0])
        b = Tensor([4.0])
        y = _Hypot()(a, b)
        y.backward()
        np.testing.assert_allclose(y.data, [5.0])
        np.testing.assert_allclose(a.grad, [0.6], rtol=1e-6)
        np.testing.assert_allclose(b.grad, [0.8], rtol=1e-6)

    def test_backward_replays_the_matching_call(self):
        f = Sin()
        x1 = Tensor([0.5])
        x2 = Tensor([1.5])
        y1 = f(x1)
        y2 = f(x2)

        y1.grad = [1.0]
        f.backward(y1)
        np.testing.assert_allclose(x1.grad, np.cos([0.5]), rtol=1e-6)
        self.assertEqual(x2.grad[0], 0.0)
        self.assertEqual(len(f.previous_inputs), 1)

        with self.assertRaises(GraphError):
            f.backward(y1)

        y2.grad = [1.0]
        f.backward(y2)
        np.testing.assert_allclose(x2.grad, np.cos([1.5]), rtol=1e-6)

        with self.assertRaises(GraphError):
            f.backward(y2)

    def test_backward_without_record_uses_most_recent_call(self):
        f = _Twice()
        x1 = Tensor([1.0])
        x2 = Tensor([1.0])
        f(x1)
        y2 = f(x2)
        y2._set_ctx(None)
        y2.grad = [1.0]

        f.backward(y2)
        self.assertEqual(x2.grad[0], 2.0)
        self.assertEqual(x1.grad[0], 0.0)


class TestNeedPreviousInput(TestCase):
    def test_returned_gradient_is_added_to_input(self):
        x = Tensor([1.0, -2.0, 3.0])
        y = _Square()(x)
        y.backward()
        np.testing.assert_allclose(x.grad, [2.0, -4.0, 6.0])

    def test_lookup_updates_table_only(self):
        f = _Lookup(vocab=4, dim=2)
        x = Tensor([1.0, 3.0, 1.0])
        y = f(x)

        self.assertEqual(y.shape, (3, 2))
        np.testing.assert_allclose(y.to_numpy()[0], [[2, 3], [6, 7], [2, 3]])

        y.grad = np.ones(6)
        inputs = f.backward(y)
        self.assertEqual(inputs, (x,))
        self.assertTrue(np.all(x.grad == 0))
        np.testing.assert_allclose(
            f.W.grad.reshape(4, 2), [[0, 0], [2, 2], [0, 0], [1, 1]]
        )

    def test_register_parameter_names_and_counts(self):
        f = _Lookup(vocab=2, dim=1, name="embed")
        (p,) = f.parameters
        self.assertEqual(p.name, "embed W")
        self.assertIs(p.value, f.W)

        y = f(Tensor([0.0]))
        y.grad = [1.0]
        f.backward(y)
        self.assertEqual(p.train_count, 1)

        f.clear_gradients()
        self.assertEqual(p.train_count, 0)
        self.assertTrue(np.all(p.grad == 0))


if __name__ == "__main__":
    unittest.main()
