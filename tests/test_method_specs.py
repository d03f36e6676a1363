"""Tests for method_specs module."""

import pytest

from solver_lab.data.method_specs import (
    Method,
    MethodFamily,
    get_default,
    get_defaults,
    get_guard,
    get_spec,
    list_guards,
    list_methods,
)


class TestMethod:
    """Tests for Method enum."""

    def test_all_methods_defined(self) -> None:
        """Verify all expected methods exist."""
        expected = {
            "bisection",
            "newton",
            "secant",
            "fixed_point",
            "midpoint",
            "trapezoid",
            "simpson",
            "monte_carlo",
            "euler",
            "rk4",
            "gauss",
            "jacobi",
            "gauss_seidel",
        }
        actual = {m.value for m in Method}
        assert actual == expected

    def test_method_values_lowercase(self) -> None:
        """Method values should be lowercase."""
        for method in Method:
            assert method.value == method.value.lower()


class TestGetSpec:
    """Tests for get_spec function."""

    @pytest.mark.parametrize(
        "method,expected_family",
        [
            (Method.BISECTION, MethodFamily.ROOT_FINDING),
            (Method.SIMPSON, MethodFamily.QUADRATURE),
            (Method.RUNGE_KUTTA4, MethodFamily.ODE),
            ("jacobi", MethodFamily.LINEAR_SYSTEM),
            ("NEWTON", MethodFamily.ROOT_FINDING),
            ("Gauss-Seidel", MethodFamily.LINEAR_SYSTEM),
            ("monte carlo", MethodFamily.QUADRATURE),
        ],
    )
    def test_get_spec_family(
        self, method: Method | str, expected_family: MethodFamily
    ) -> None:
        """Verify family of each method, with string parsing."""
        assert get_spec(method).family is expected_family

    @pytest.mark.parametrize(
        "alias,expected",
        [
            ("runge_kutta4", Method.RUNGE_KUTTA4),
            ("RK4", Method.RUNGE_KUTTA4),
            ("rectangles", Method.MIDPOINT),
            ("seidel", Method.GAUSS_SEIDEL),
            ("iteration", Method.FIXED_POINT),
        ],
    )
    def test_aliases(self, alias: str, expected: Method) -> None:
        """Common alternative names should resolve."""
        assert get_spec(alias).method is expected

    def test_name_matches_enum_value(self) -> None:
        """Spec name is the identifier used in results."""
        for method in Method:
            assert get_spec(method).name == method.value

    def test_only_monte_carlo_is_random(self) -> None:
        """Monte Carlo is the single non-deterministic method."""
        random_methods = [m for m in Method if not get_spec(m).deterministic]
        assert random_methods == [Method.MONTE_CARLO]

    def test_orders(self) -> None:
        """Orders of accuracy should match the textbook values."""
        assert get_spec("newton").order == 2
        assert get_spec("simpson").order == 4
        assert get_spec("trapezoid").order == 2
        assert get_spec("euler").order == 1
        assert get_spec("rk4").order == 4

    def test_invalid_method_raises(self) -> None:
        """Unknown method should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown method"):
            get_spec("regula_falsi")

    def test_spec_immutable(self) -> None:
        """MethodSpec should be immutable."""
        spec = get_spec("gauss")
        with pytest.raises(AttributeError):
            spec.order = 3  # type: ignore[misc]


class TestListMethods:
    """Tests for list_methods function."""

    @pytest.mark.parametrize(
        "family,expected",
        [
            (
                MethodFamily.ROOT_FINDING,
                [Method.BISECTION, Method.NEWTON, Method.SECANT, Method.FIXED_POINT],
            ),
            (
                "quadrature",
                [Method.MIDPOINT, Method.TRAPEZOID, Method.SIMPSON, Method.MONTE_CARLO],
            ),
            ("ode", [Method.EULER, Method.RUNGE_KUTTA4]),
            ("linear_system", [Method.GAUSS, Method.JACOBI, Method.GAUSS_SEIDEL]),
        ],
    )
    def test_methods_per_family(
        self, family: MethodFamily | str, expected: list[Method]
    ) -> None:
        """Each family lists its methods in declaration order."""
        assert list_methods(family) == expected

    def test_all_methods(self) -> None:
        """Without a family every method is listed."""
        assert list_methods() == list(Method)

    def test_invalid_family_raises(self) -> None:
        """Unknown family should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown method family"):
            list_methods("optimization")


class TestDefaults:
    """Tests for default settings."""

    @pytest.mark.parametrize(
        "family,setting,expected",
        [
            (MethodFamily.ROOT_FINDING, "precision", 1e-6),
            (MethodFamily.ROOT_FINDING, "max_iterations", 100),
            (MethodFamily.QUADRATURE, "max_iterations", 20),
            (MethodFamily.QUADRATURE, "min_samples", 10_000),
            (MethodFamily.ODE, "step", 0.1),
            (MethodFamily.ODE, "max_steps", 1000),
            (MethodFamily.LINEAR_SYSTEM, "max_iterations", 1000),
        ],
    )
    def test_get_default(
        self, family: MethodFamily, setting: str, expected: float
    ) -> None:
        """Verify default values."""
        assert get_default(family, setting) == expected

    def test_unknown_setting_raises(self) -> None:
        """Unknown setting should raise ValueError listing valid keys."""
        with pytest.raises(ValueError, match="Unknown setting"):
            get_default("ode", "precision")

    def test_get_defaults_returns_copy(self) -> None:
        """Mutating the returned mapping must not change the defaults."""
        settings = get_defaults("ode")
        settings["step"] = 42.0
        assert get_default("ode", "step") == 0.1


class TestGuards:
    """Tests for numerical guard thresholds."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("derivative_floor", 1e-10),
            ("divergence_limit", 1e10),
            ("stagnation_delta", 1e-15),
            ("secant_floor", 1e-15),
            ("pivot_floor", 1e-10),
            ("segment_cap", 1_000_000),
            ("sample_cap", 10_000_000),
        ],
    )
    def test_get_guard(self, name: str, expected: float) -> None:
        """Verify guard values."""
        assert get_guard(name) == expected

    def test_unknown_guard_raises(self) -> None:
        """Unknown guard should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown guard"):
            get_guard("epsilon")

    def test_list_guards_returns_copy(self) -> None:
        """Mutating the listing must not change the guards."""
        guards = list_guards()
        guards["pivot_floor"] = 1.0
        assert get_guard("pivot_floor") == 1e-10
