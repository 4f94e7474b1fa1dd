"""
Tests for intensity normalization, field algorithms and image-based energies.
"""

import numpy as np
import pytest

from activecontours.core.algorithms import (
    distance_field,
    gradient_vector_flow,
    map_range,
    normalize_intensities,
    reconstruct_potential,
    rescale,
    value_range_mapping,
)
from activecontours.core.energies import (
    DistanceEnergy,
    GradientEnergy,
    GradientVectorFlowEnergy,
    IntensityEnergy,
)
from activecontours.types import (
    DistanceMetric,
    EnergyInitError,
    EnergyNormalizationMode,
    ForegroundColor,
    IntensityNormalizationMode,
    Snake,
)


@pytest.fixture
def disk_image():
    yy, xx = np.mgrid[:64, :64]
    return ((xx - 32) ** 2 + (yy - 32) ** 2 <= 10 ** 2).astype(float)


class TestIntensityNormalization:
    """Mapping of input images to the working representation."""

    def test_value_range_mapping(self):
        assert value_range_mapping(2.0, 10.0) == ((2.0, 10.0), (0.0, 1.0))
        assert value_range_mapping(-4.0, 2.0) == ((-4.0, 4.0), (-1.0, 1.0))
        assert value_range_mapping(-5.0, -1.0) == ((-5.0, -1.0), (-1.0, 0.0))

    def test_true_range(self):
        image = np.array([[10, 20], [30, 50]], dtype=np.uint8)
        result = normalize_intensities(image, IntensityNormalizationMode.TRUE_RANGE)
        np.testing.assert_allclose(result, [[0.0, 0.25], [0.5, 1.0]])

    def test_theoretic_range(self):
        image = np.array([[0, 51], [102, 255]], dtype=np.uint8)
        result = normalize_intensities(image, IntensityNormalizationMode.THEORETIC_RANGE)
        np.testing.assert_allclose(result, [[0.0, 0.2], [0.4, 1.0]])

    def test_signed_image(self):
        image = np.array([[-2.0, 0.0], [1.0, 4.0]])
        result = normalize_intensities(image, IntensityNormalizationMode.TRUE_RANGE)
        np.testing.assert_allclose(result, [[-0.5, 0.0], [0.25, 1.0]])

    def test_none_only_converts(self):
        image = np.array([[3, 7]], dtype=np.uint16)
        result = normalize_intensities(image, IntensityNormalizationMode.NONE)
        assert result.dtype == float
        np.testing.assert_array_equal(result, [[3.0, 7.0]])

    def test_constant_image_keeps_unit_scale(self):
        result = normalize_intensities(np.full((4, 4), 7.0))
        assert np.all(np.isfinite(result))
        np.testing.assert_allclose(result, 0.0)

    def test_degenerate_source_range(self):
        np.testing.assert_allclose(map_range([5.0, 5.0], (5.0, 5.0), (0.0, 1.0)), 0.0)

    def test_channels_share_mapping(self):
        image = np.zeros((2, 2, 2))
        image[..., 1] = 2.0
        image[0, 0, 0] = 1.0
        result = normalize_intensities(image)
        assert result[0, 0, 0] == pytest.approx(0.5)
        np.testing.assert_allclose(result[..., 1], 1.0)


class TestFields:
    """Scalar and vector field algorithms."""

    def test_rescale_is_idempotent(self):
        values = np.random.default_rng(2).normal(size=(16, 16)) * 40 + 3
        once = rescale(values)
        np.testing.assert_allclose(rescale(once), once)
        assert once.min() == pytest.approx(0.0)
        assert once.max() == pytest.approx(1.0)

    def test_rescale_constant(self):
        np.testing.assert_array_equal(rescale(np.full((3, 3), 2.0)), 2.0)

    def test_distance_metrics(self):
        image = np.zeros((16, 16))
        image[5, 5] = 1
        euclid = distance_field(image, DistanceMetric.EUCLIDEAN)
        chess = distance_field(image, DistanceMetric.CHESSBOARD)
        city = distance_field(image, DistanceMetric.CITYBLOCK)
        assert euclid[5, 5] == 0
        assert euclid[5, 8] == pytest.approx(3.0)
        assert euclid[8, 8] == pytest.approx(np.sqrt(18))
        assert chess[8, 8] == 3
        assert city[8, 8] == 6

    def test_distance_black_foreground(self):
        image = np.ones((8, 8))
        image[2, 2] = 0
        field = distance_field(image, foreground=ForegroundColor.BLACK)
        assert field[2, 2] == 0
        assert field[2, 5] == pytest.approx(3.0)

    def test_distance_needs_foreground(self):
        with pytest.raises(ValueError):
            distance_field(np.zeros((8, 8)))

    def test_gvf_points_towards_edge(self, disk_image):
        u, v = gradient_vector_flow(disk_image, iterations=120, mu=0.2)
        # left of the disk the flow points right, above it points down
        assert u[32, 16] > 0
        assert v[16, 32] > 0

    def test_gvf_parameter_checks(self, disk_image):
        with pytest.raises(ValueError):
            gradient_vector_flow(disk_image, mu=0.5)
        with pytest.raises(ValueError):
            gradient_vector_flow(disk_image, iterations=-1)

    def test_potential_of_linear_ramp(self):
        u = np.full((8, 8), -1.0)
        v = np.zeros((8, 8))
        phi = reconstruct_potential(u, v)
        # -grad(phi) = (u, v) gives phi increasing with x
        np.testing.assert_allclose(np.diff(phi, axis=1), 1.0, atol=1e-4)
        np.testing.assert_allclose(np.diff(phi, axis=0), 0.0, atol=1e-4)
        assert phi.min() == pytest.approx(0.0, abs=1e-9)


class TestImageEnergies:
    """Point sampling and vector parts of image energies."""

    def test_intensity_values_and_border_derivative(self, stub):
        image = np.tile(np.arange(8.0), (8, 1))
        snake = Snake([[0, 0], [7, 0], [7, 7]])
        opt = stub(snake, image=image, intensity=IntensityNormalizationMode.TRUE_RANGE)
        energy = IntensityEnergy()
        energy.init(opt)
        assert energy.get_value(7, 3) == pytest.approx(1.0)
        # border: one-sided difference against the pixel itself
        assert energy.get_derivative_x(0, 3) == pytest.approx(1 / 7)
        assert energy.get_derivative_x(3, 3) == pytest.approx(2 / 7)
        assert energy.get_derivative_y(3, 3) == pytest.approx(0.0)
        assert energy.calc_energy(opt) == pytest.approx(0 + 1 + 1)

    def test_normalization_is_idempotent(self, stub, disk_image):
        energy = IntensityEnergy()
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=disk_image * 300))
        first = energy.field.copy()
        energy.normalize_energy()
        energy.normalize_energy()
        np.testing.assert_array_equal(energy.field, first)

    def test_vector_part_layout(self, stub, disk_image):
        snake = Snake([[10, 30], [40, 30], [30, 50], [20, 45]])
        energy = IntensityEnergy()
        opt = stub(snake, image=disk_image)
        energy.init(opt)
        vector = energy.get_vector_part(opt)
        dx, dy = energy.get_derivatives(snake.pixel_points())
        np.testing.assert_allclose(vector, np.concatenate([dx, dy]))
        assert energy.get_matrix_part(opt) is None

    def test_gradient_field_range(self, stub, disk_image):
        energy = GradientEnergy()
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=disk_image))
        assert energy.field.min() == pytest.approx(-1.0)
        assert energy.field.max() == pytest.approx(0.0)
        assert energy.get_value(32, 32) == 0.0

    def test_gradient_balanced_divisor(self, stub, disk_image):
        snake = Snake([[20, 30], [44, 30], [32, 44]])
        plain, balanced = GradientEnergy(), GradientEnergy()
        opt_plain = stub(snake, image=disk_image)
        opt_balanced = stub(
            snake, image=disk_image,
            normalization=EnergyNormalizationMode.BALANCED_DERIVATIVES,
        )
        plain.init(opt_plain)
        balanced.init(opt_balanced)
        np.testing.assert_allclose(
            balanced.get_vector_part(opt_balanced), plain.get_vector_part(opt_plain) / 4
        )

    def test_gradient_pulls_towards_edge(self, stub, disk_image):
        energy = GradientEnergy()
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=disk_image))
        # next to the right edge of the disk the step X - gamma * dE moves onto the edge
        assert energy.get_derivative_x(41, 32) < 0

    def test_distance_energy(self, stub):
        image = np.zeros((32, 32))
        image[16, 16] = 1
        energy = DistanceEnergy(metric=DistanceMetric.CITYBLOCK)
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=image))
        assert energy.get_value(16, 16) == 0.0
        assert energy.raw_field[16, 20] == 4
        assert energy.field.max() == pytest.approx(1.0)

    def test_distance_energy_without_foreground(self, stub):
        energy = DistanceEnergy()
        with pytest.raises(EnergyInitError):
            energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=np.zeros((16, 16))))

    def test_missing_image(self, stub):
        with pytest.raises(EnergyInitError):
            IntensityEnergy().init(stub(Snake([[1, 1], [5, 1], [5, 5]])))

    def test_explicit_image_overrides_working_image(self, stub, disk_image):
        energy = IntensityEnergy(image=disk_image)
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=np.zeros((64, 64))))
        assert energy.get_value(32, 32) == pytest.approx(1.0)

    def test_gvf_energy(self, stub, disk_image):
        energy = GradientVectorFlowEnergy()
        energy.init(stub(Snake([[1, 1], [5, 1], [5, 5]]), image=disk_image))
        u, v = energy.flow
        assert np.abs(u).max() == pytest.approx(1.0)
        assert energy.field.min() == pytest.approx(0.0)
        assert energy.field.max() == pytest.approx(1.0)
        # the step X - gamma * dE moves the point right, towards the disk
        assert energy.get_derivative_x(16, 32) < 0
