"""Tests for reference problem generation."""

import math

import numpy as np
import pytest

from solver_lab.algorithms.linear_systems import is_diagonally_dominant
from solver_lab.algorithms.problems import (
    DEFAULT_SEED,
    LinearProblem,
    SystemFingerprint,
    compute_fingerprint,
    create_diagonally_dominant_matrix,
    create_linear_problem,
    dominance_margin,
    reference_integral_problems,
    reference_linear_problems,
    reference_ode_problems,
    reference_root_problems,
)


class TestCreateDiagonallyDominantMatrix:
    """Tests for create_diagonally_dominant_matrix function."""

    def test_creates_correct_shape(self) -> None:
        """Matrix should be n×n."""
        A = create_diagonally_dominant_matrix(30, seed=42)
        assert A.shape == (30, 30)

    def test_strictly_dominant(self) -> None:
        """Every row is strictly diagonally dominant."""
        A = create_diagonally_dominant_matrix(30, seed=42)
        assert is_diagonally_dominant(A)
        assert dominance_margin(A) > 0

    def test_dominance_ratio(self) -> None:
        """|a_ii| is dominance × off-diagonal sum, plus one."""
        A = create_diagonally_dominant_matrix(10, dominance=3.0, seed=1)
        off = np.abs(A).sum(axis=1) - np.abs(np.diag(A))
        np.testing.assert_allclose(np.abs(np.diag(A)), 3.0 * off + 1.0)

    def test_reproducibility(self) -> None:
        """Same seed should produce identical matrix."""
        A1 = create_diagonally_dominant_matrix(20, seed=42)
        A2 = create_diagonally_dominant_matrix(20, seed=42)
        np.testing.assert_array_equal(A1, A2)

    def test_different_seeds_produce_different_matrices(self) -> None:
        """Different seeds should produce different matrices."""
        A1 = create_diagonally_dominant_matrix(20, seed=42)
        A2 = create_diagonally_dominant_matrix(20, seed=43)
        assert not np.allclose(A1, A2)

    @pytest.mark.parametrize("dominance", [1.0, 0.5, -2.0])
    def test_invalid_dominance(self, dominance: float) -> None:
        """Dominance must exceed 1."""
        with pytest.raises(ValueError, match="Dominance must be greater than 1"):
            create_diagonally_dominant_matrix(5, dominance=dominance)

    def test_one_by_one(self) -> None:
        """A 1×1 matrix is a non-zero scalar."""
        A = create_diagonally_dominant_matrix(1, seed=0)
        assert abs(A[0, 0]) == 1.0


class TestComputeFingerprint:
    """Tests for compute_fingerprint function."""

    def test_fingerprint_fields(self) -> None:
        """Fingerprint should contain all expected fields."""
        A = create_diagonally_dominant_matrix(10, seed=42)
        fp = compute_fingerprint(A, seed=42)
        assert isinstance(fp, SystemFingerprint)
        assert fp.matrix_size == 10
        assert fp.seed == 42
        assert fp.dominance_margin > 0
        assert fp.condition_number >= 1.0
        assert fp.frobenius_norm == pytest.approx(np.linalg.norm(A))

    def test_to_dict(self) -> None:
        """Fingerprint should serialize to dict."""
        A = create_diagonally_dominant_matrix(10, seed=42)
        d = compute_fingerprint(A, seed=42).to_dict()
        assert set(d) == {
            "matrix_size",
            "dominance_margin",
            "condition_number",
            "frobenius_norm",
            "random_seed",
        }

    def test_fingerprint_immutable(self) -> None:
        """Fingerprint should be immutable."""
        fp = compute_fingerprint(np.eye(2), seed=None)
        with pytest.raises(AttributeError):
            fp.matrix_size = 3  # type: ignore[misc]


class TestCreateLinearProblem:
    """Tests for create_linear_problem function."""

    def test_vector_matches_solution(self) -> None:
        """The right-hand side is A times the known solution."""
        problem = create_linear_problem(12)
        assert isinstance(problem, LinearProblem)
        np.testing.assert_allclose(problem.matrix @ problem.solution, problem.vector)

    def test_default_seed(self) -> None:
        """Default seed is used for generation."""
        problem = create_linear_problem(5)
        assert problem.fingerprint.seed == DEFAULT_SEED

    def test_reproducibility(self) -> None:
        """Same seed should produce the same problem."""
        p1 = create_linear_problem(6, seed=9)
        p2 = create_linear_problem(6, seed=9)
        np.testing.assert_array_equal(p1.matrix, p2.matrix)
        np.testing.assert_array_equal(p1.vector, p2.vector)
        assert p1.fingerprint == p2.fingerprint


class TestReferenceProblems:
    """Tests for the built-in benchmark catalogue."""

    @pytest.mark.parametrize("problem", reference_root_problems(), ids=lambda p: p.name)
    def test_root_problems(self, problem) -> None:
        """Known roots are roots and lie inside the bracket."""
        assert abs(problem.f(problem.root)) < 1e-12
        assert problem.a < problem.root < problem.b
        assert np.sign(problem.f(problem.a)) != np.sign(problem.f(problem.b))

    @pytest.mark.parametrize("problem", reference_integral_problems(), ids=lambda p: p.name)
    def test_integral_problems(self, problem) -> None:
        """Handles are vectorised and intervals are ordered."""
        xs = np.linspace(problem.a, problem.b, 5)
        assert np.asarray(problem.f(xs)).shape == (5,)
        assert problem.a < problem.b
        assert math.isfinite(problem.exact)

    @pytest.mark.parametrize("problem", reference_ode_problems(), ids=lambda p: p.name)
    def test_ode_problems(self, problem) -> None:
        """Exact solutions satisfy the initial condition."""
        assert problem.exact(problem.x0) == pytest.approx(problem.y0)
        assert problem.x0 < problem.x_end

    def test_linear_problems(self) -> None:
        """Known solutions satisfy their systems."""
        for problem in reference_linear_problems():
            np.testing.assert_allclose(problem.matrix @ problem.solution, problem.vector)
