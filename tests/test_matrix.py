"""
Tests for the dense matrix engine.
"""

import numpy as np
import pytest
from scipy.signal import correlate2d

from imagetools import DimensionError, Index2, Matrix, MatrixError, Why


class TestConstruction:
    """Constructors, properties and element access."""

    def test_index2_renders_as_pair(self):
        assert str(Index2(3, -1)) == "(3,-1)"
        assert Index2(1, 2).x == 1

    def test_new_copies_value_prefix(self):
        m = Matrix.new(2, 2, 1, 2, 3)
        np.testing.assert_array_equal(m.values(), [1, 2, 3, 0])
        assert m.dtype == np.int64

        extra = Matrix.new(2, 1, 1.5, 2.5, 3.5)
        np.testing.assert_array_equal(extra.values(), [1.5, 2.5])

    def test_non_positive_dimensions_give_empty_matrix(self):
        m = Matrix(0, 5)
        assert m.empty()
        assert m.dims() == Index2(0, 0)
        assert Matrix.zeros(-1, 3).empty()

    def test_identity_and_uniform(self):
        np.testing.assert_array_equal(Matrix.identity(3).to_array(), np.eye(3))
        u = Matrix.uniform(3, 2, 7)
        assert u.dims() == (3, 2)
        assert np.all(u.to_array() == 7)

    def test_random_constructors_are_seeded(self):
        a = Matrix.rand_int(5, 4, 10, rng=42)
        b = Matrix.rand_int(5, 4, 10, rng=42)
        assert a == b
        assert a.min() >= 0 and a.max() < 10

        big = Matrix.rand_int(3, 3, 0, rng=1)
        assert big.min() >= 0

        f = Matrix.rand_float(4, 4, rng=3)
        assert 0 <= f.min() and f.max() < 1
        assert Matrix.rand_exp(4, 4, rng=3).min() >= 0
        assert Matrix.rand_norm(4, 4, rng=3).dims() == (4, 4)

    def test_from_array_shape_and_validation(self):
        arr = np.arange(6).reshape(2, 3)
        m = Matrix.from_array(arr)
        assert m.dims() == (3, 2)
        assert m.at(2, 1) == 5

        with pytest.raises(ValueError):
            Matrix.from_array(np.arange(6))

    def test_shared_storage_copies_on_first_mutation(self):
        arr = np.zeros((2, 2))
        m = Matrix.from_array(arr, copy=False)
        m.assign(0, 0, 5)
        assert arr[0, 0] == 0
        assert m.at(0, 0) == 5

    def test_at_and_assign_bounds(self):
        m = Matrix.zeros(2, 2)
        with pytest.raises(DimensionError) as exc_info:
            m.at(2, 0)
        assert exc_info.value.why is Why.OUT_OF_BOUNDS
        assert exc_info.value.dims == ((2, 0),)

        with pytest.raises(DimensionError):
            m.assign(0, -1, 1)

    def test_row_and_column_are_copies(self):
        m = Matrix.new(3, 2, 1, 2, 3, 4, 5, 6)
        np.testing.assert_array_equal(m.row(1), [4, 5, 6])
        np.testing.assert_array_equal(m.column(2), [3, 6])

        r = m.row(0)
        r[0] = 100
        assert m.at(0, 0) == 1

        with pytest.raises(DimensionError):
            m.row(2)


class TestArithmetic:
    """Scalar and elementwise operations."""

    def setup_method(self):
        self.a = Matrix.rand_int(4, 3, 100, rng=1)
        self.b = Matrix.rand_int(4, 3, 100, rng=2)

    def test_add_then_sub_is_identity(self):
        assert self.a.add_elem(self.b).sub_elem(self.b) == self.a

    def test_elementwise_dimension_mismatch(self):
        with pytest.raises(DimensionError) as exc_info:
            self.a.add_elem(Matrix.zeros(3, 3, dtype=np.int64))
        err = exc_info.value
        assert err.why is Why.DIMENSIONS
        assert err.op == "add_elem"
        assert err.dims == ((4, 3), (3, 3))
        assert "add_elem((4,3),(3,3))" in str(err)

    def test_empty_operand_is_absorbing(self):
        assert Matrix().add_elem(self.a) == self.a
        assert self.a.mul_elem(Matrix()) == self.a

    def test_results_do_not_alias(self):
        c = self.a.add(0)
        c.assign(0, 0, -1)
        assert self.a.at(0, 0) != -1

    def test_scalar_operations(self):
        m = Matrix.new(2, 1, 1, 2)
        np.testing.assert_array_equal(m.add(1).values(), [2, 3])
        np.testing.assert_array_equal(m.sub(1).values(), [0, 1])
        np.testing.assert_array_equal(m.mul(3).values(), [3, 6])

    def test_integer_division_truncates_toward_zero(self):
        m = Matrix.new(2, 1, -7, 7)
        np.testing.assert_array_equal(m.div(2).values(), [-3, 3])
        np.testing.assert_array_equal(
            m.div_elem(Matrix.new(2, 1, 2, -2)).values(), [-3, -3]
        )

    def test_scalar_division_by_zero(self):
        with pytest.raises(MatrixError) as exc_info:
            self.a.div(0)
        assert exc_info.value.why is Why.DIVIDE_BY_0

    def test_div_elem_reports_first_zero(self):
        ones = Matrix.uniform(3, 2, 1.0)
        divisor = Matrix.new(3, 2, 1.0, 1.0, 1.0, 1.0, 0.0, 0.0)
        with pytest.raises(DimensionError) as exc_info:
            ones.div_elem(divisor)
        assert exc_info.value.why is Why.DIVIDE_BY_0
        assert exc_info.value.dims == ((1, 1),)

    def test_mul_mat_matches_numpy(self):
        a = Matrix.rand_norm(3, 2, rng=5)
        b = Matrix.rand_norm(4, 3, rng=6)
        c = a.mul_mat(b)
        assert c.dims() == (4, 2)
        np.testing.assert_allclose(c.to_array(), a.to_array() @ b.to_array())

    def test_mul_mat_dimension_mismatch(self):
        with pytest.raises(DimensionError) as exc_info:
            self.a.mul_mat(self.b)
        assert exc_info.value.why is Why.DIMENSIONS

    def test_transpose(self):
        t = self.a.trans()
        assert t.dims() == (3, 4)
        np.testing.assert_array_equal(t.to_array(), self.a.to_array().T)

        row = Matrix.new(3, 1, 1, 2, 3)
        col = row.trans()
        col.assign(0, 0, 9)
        assert row.at(0, 0) == 1


class TestElementaryTransforms:
    """elem1, elem2 and elem3 mutate the receiver in place."""

    def setup_method(self):
        self.m = Matrix.new(2, 3, 1, 2, 3, 4, 5, 6)

    def test_elem1_swaps_rows_and_columns(self):
        self.m.elem1(False, 0, 2)
        np.testing.assert_array_equal(self.m.to_array(), [[5, 6], [3, 4], [1, 2]])
        self.m.elem1(True, 0, 1)
        np.testing.assert_array_equal(self.m.to_array(), [[6, 5], [4, 3], [2, 1]])

    def test_elem2_scales(self):
        result = self.m.elem2(False, 1, 10)
        assert result is self.m
        np.testing.assert_array_equal(self.m.row(1), [30, 40])

    def test_elem2_rejects_zero(self):
        with pytest.raises(MatrixError) as exc_info:
            self.m.elem2(False, 0, 0)
        assert exc_info.value.why is Why.OUT_OF_BOUNDS

    def test_elem3_adds_multiple(self):
        self.m.elem3(True, 1, 0, 2)
        np.testing.assert_array_equal(self.m.column(1), [4, 10, 16])

    def test_elem3_zero_scalar_is_noop(self):
        before = self.m.clone()
        self.m.elem3(False, 0, 1, 0)
        assert self.m == before

    def test_out_of_range_lines(self):
        with pytest.raises(MatrixError):
            self.m.elem1(False, 0, 3)
        with pytest.raises(MatrixError):
            self.m.elem3(True, 2, 0, 1)


class TestLinearAlgebra:
    """Determinant and inverse."""

    def test_closed_form_determinants(self):
        assert Matrix().det() == 0
        assert Matrix.new(1, 1, 7).det() == 7
        assert Matrix.new(2, 2, 2, 0, 0, 3).det() == 6

    def test_equal_rows_give_zero(self):
        m = Matrix.new(3, 3, 1, 2, 3, 1, 2, 3, 4, 5, 7)
        assert m.det() == 0

    def test_integer_determinant_is_exact(self):
        assert Matrix.new(3, 3, 2, -3, 1, 2, 0, -1, 1, 4, 5).det() == 49
        # zero leading pivot forces a row swap
        assert Matrix.new(3, 3, 0, 1, 2, 1, 0, 3, 4, -3, 8).det() == -2

    def test_float_determinant_matches_numpy(self):
        m = Matrix.rand_norm(5, 5, rng=11)
        assert m.det() == pytest.approx(np.linalg.det(m.to_array()))

        swapped = Matrix.new(3, 3, 0.0, 1.0, 2.0, 1.0, 0.0, 3.0, 4.0, -3.0, 8.0)
        assert swapped.det() == pytest.approx(-2.0)

    def test_det_requires_square(self):
        with pytest.raises(DimensionError) as exc_info:
            Matrix.zeros(2, 3).det()
        assert exc_info.value.why is Why.NOT_SQUARE

    def test_inverse_times_matrix_is_identity(self):
        for n in (1, 2, 4):
            a = Matrix.rand_norm(n, n, rng=n)
            product = a.mul_mat(a.inv())
            np.testing.assert_allclose(product.to_array(), np.eye(n), atol=1e-9)

    def test_integer_matrix_inverts_in_float(self):
        a = Matrix.new(3, 3, 2, -3, 1, 2, 0, -1, 1, 4, 5)
        inv = a.inv()
        assert inv.dtype == np.float64
        np.testing.assert_allclose(inv.to_array(), np.linalg.inv(a.to_array()))

    def test_singular_matrices_are_irreversible(self):
        for m in (
            Matrix.new(1, 1, 0.0),
            Matrix.new(2, 2, 1.0, 2.0, 2.0, 4.0),
            Matrix.new(3, 3, 1.0, 2.0, 3.0, 1.0, 2.0, 3.0, 0.0, 1.0, 1.0),
        ):
            with pytest.raises(MatrixError) as exc_info:
                m.inv()
            assert exc_info.value.why is Why.IRREVERSIBLE

    def test_inv_requires_square(self):
        with pytest.raises(DimensionError):
            Matrix.zeros(3, 2).inv()


class TestConvolution:
    """conv, deconv and filter."""

    def setup_method(self):
        self.image = Matrix.rand_int(5, 5, 20, rng=7)
        self.kernel = Matrix.new(3, 3, 1, 0, -1, 2, 0, -2, 1, 0, -1)

    def test_output_dimensions(self):
        assert self.image.conv(self.kernel).dims() == (3, 3)
        assert self.image.conv(self.kernel, 2, 2).dims() == (2, 2)

    def test_matches_valid_correlation(self):
        expected = correlate2d(self.image.to_array(), self.kernel.to_array(), mode="valid")
        np.testing.assert_array_equal(self.image.conv(self.kernel).to_array(), expected)

        strided = self.image.conv(self.kernel, 2, 1).to_array()
        np.testing.assert_array_equal(strided, expected[:, ::2])

    def test_invalid_step_and_large_kernel(self):
        with pytest.raises(DimensionError) as exc_info:
            self.image.conv(self.kernel, 0, 1)
        assert exc_info.value.why is Why.INVALID_STEP

        with pytest.raises(DimensionError) as exc_info:
            self.kernel.conv(self.image)
        assert exc_info.value.why is Why.LARGE_KERNEL

    def test_empty_operands_return_receiver(self):
        assert self.image.conv(Matrix()) == self.image

    def test_deconv_is_adjoint_of_conv(self):
        b = Matrix.rand_int(3, 3, 20, rng=8)
        forward = self.image.conv(self.kernel)
        backward = b.deconv(self.kernel)
        assert backward.dims() == (5, 5)
        lhs = int(np.sum(forward.to_array() * b.to_array()))
        rhs = int(np.sum(self.image.to_array() * backward.to_array()))
        assert lhs == rhs

    def test_deconv_strided_dimensions(self):
        assert Matrix.zeros(3, 2).deconv(Matrix.zeros(2, 2), 2, 3).dims() == (6, 5)

    def test_filter_keeps_size(self):
        identity = Matrix.new(3, 3, 0, 0, 0, 0, 1, 0, 0, 0, 0)
        filtered = self.image.filter(identity)
        assert filtered == self.image

        box = Matrix.uniform(3, 3, 1)
        corner = self.image.filter(box).at(0, 0)
        assert corner == self.image.sub_matrix(0, 0, 2, 2).to_array().sum()


class TestStructure:
    """Sub-matrices, iteration, resizing and formatting."""

    def test_sub_matrix_of_identity(self):
        assert Matrix.identity(4).sub_matrix(0, 0, 2, 2) == Matrix.identity(2)

    def test_sub_matrix_bounds(self):
        m = Matrix.identity(4)
        for region in ((2, 0, 1, 2), (0, 0, 5, 2), (-1, 0, 2, 2), (1, 1, 1, 3)):
            with pytest.raises(DimensionError) as exc_info:
                m.sub_matrix(*region)
            assert exc_info.value.why is Why.OUT_OF_BOUNDS

    def test_windows_cover_every_inside_position(self):
        m = Matrix.rand_int(4, 3, 10, rng=3)
        windows = m.windows(1, 1, 2, 2)
        first = list(windows)
        second = list(windows)
        assert len(first) == 6
        assert [k for k, _ in first] == [k for k, _ in second]
        k, w = first[-1]
        assert k == Index2(2, 1)
        assert w == m.sub_matrix(2, 1, 4, 3)

        assert list(m.windows(1, 1, 5, 1)) == []
        with pytest.raises(DimensionError):
            m.windows(0, 1, 1, 1)

    def test_elements_and_step(self):
        m = Matrix.new(3, 3, *range(9))
        coords = [k for k, _ in m.elements(2, 2)]
        assert coords == [(0, 0), (2, 0), (0, 2), (2, 2)]
        assert [int(v) for _, v in m.elements(2, 2)] == [0, 2, 6, 8]

        stepped = m.step(2, 1)
        assert stepped.dims() == (2, 3)
        np.testing.assert_array_equal(stepped.column(1), [2, 5, 8])

    def test_expand_anchors(self):
        m = Matrix.new(2, 2, 1, 2, 3, 4)
        centred = m.expand(4, 4, 4)
        np.testing.assert_array_equal(centred.sub_matrix(1, 1, 3, 3).to_array(), m.to_array())
        assert centred.to_array().sum() == 10

        bottom_right = m.expand(3, 3, 8)
        assert bottom_right.at(2, 2) == 4
        assert bottom_right.at(0, 0) == 0

        cropped = Matrix.new(3, 3, *range(9)).expand(2, 2, 0)
        np.testing.assert_array_equal(cropped.to_array(), [[0, 1], [3, 4]])

    def test_min_max_convert_map(self):
        m = Matrix.new(3, 1, 2.7, -2.7, 0.5)
        assert m.min_max() == (-2.7, 2.7)
        np.testing.assert_array_equal(m.convert(np.int64).values(), [2, -2, 0])
        doubled = m.map(lambda v: v * 2)
        np.testing.assert_allclose(doubled.values(), [5.4, -5.4, 1.0])
        assert Matrix().min() == 0

    def test_equality_and_hash(self):
        a = Matrix.new(2, 1, 1, 2)
        assert a == Matrix.new(2, 1, 1, 2)
        assert a != Matrix.new(1, 2, 1, 2)
        with pytest.raises(TypeError):
            hash(a)

    def test_formatting(self):
        assert str(Matrix.new(2, 2, 1, 2, 3, 4)) == "[1,2;3,4]"
        assert Matrix.new(2, 1, 0.5, 1.25).to_string(precision=2) == "[0.50,1.25]"
        assert str(Matrix()) == "[]"

        text = Matrix.new(3, 2, 1, 20, 3, 4, 5, 600).to_string(width=2)
        assert text.splitlines() == ["[", "\t1,20", "\t  3;", "\t4, 5", "\t600", "]"]
