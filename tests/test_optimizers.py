"""
Tests for the single-snake optimizers, termination criteria and step sizes.
"""

from types import SimpleNamespace

import numpy as np
import pytest

from activecontours.core.energies import (
    ChanVeseRegionFitEnergy,
    DistanceEnergy,
    IntensityEnergy,
    KassCurvatureEnergy,
    KassLengthEnergy,
    SnakeEnergy,
)
from activecontours.core.optimizers import (
    AreaDifference,
    ConstantStepSize,
    ExternalEnergyStepSize,
    MaxIterations,
    MotionDifference,
    SlidingAreaDifference,
    SnakeOptimizerGreedy,
    SnakeOptimizerVarCalc,
)
from activecontours.types import (
    EnergyInitError,
    EnergyNormalizationMode,
    OptimizerError,
    OptimizerOptions,
    SegmentationResult,
    Snake,
    SnakeStatus,
)


class ConstantEnergy(SnakeEnergy):
    """Energy without derivatives."""

    name = "constant"

    def calc_energy(self, optimizer, overlap=None):
        return 1.0


def irregular_circle(cx=32, cy=32, radius=20):
    t = np.array([0.0, 0.6, 1.5, 2.2, 3.1, 3.9, 4.8, 5.6])
    return np.column_stack([cx + radius * np.cos(t), cy + radius * np.sin(t)])


@pytest.fixture
def blank():
    return np.zeros((64, 64))


class TestVariationalOptimizer:
    """Implicit Euler optimizer."""

    def test_rejects_non_derivable_energies(self):
        with pytest.raises(TypeError):
            SnakeOptimizerVarCalc([(ConstantEnergy(), 1.0)])

    def test_spacing_becomes_more_uniform(self, blank):
        options = OptimizerOptions(resample=False, termination=MaxIterations(10))
        optimizer = SnakeOptimizerVarCalc(
            [(KassLengthEnergy(1.0), 1.0), (KassCurvatureEnergy(1.0), 1.0)], options
        )
        initial = Snake(irregular_circle())
        result = optimizer.run(blank, initial)

        final = result.snakes[0]
        assert final.num_points == 8
        assert np.var(final.point_distances()) <= np.var(initial.point_distances())
        assert final.length() < initial.length()
        assert result.iterations == 10
        assert result.status is SnakeStatus.DONE

    def test_scale_factor_and_result(self, blank, circle):
        options = OptimizerOptions(termination=MaxIterations(2))
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)], options)
        result = optimizer.run(np.zeros((48, 64)), circle(32, 24, 12, 20))
        assert optimizer.scale_factor == 64.0
        assert isinstance(result, SegmentationResult)
        assert not result.snakes[0].normalized
        assert result.label_image.shape == (48, 64)
        assert result.label_image[24, 32] == 1
        assert result.energy_table is None

    def test_system_assembly(self, blank, circle):
        options = OptimizerOptions(resample=False)
        optimizer = SnakeOptimizerVarCalc(
            [(KassLengthEnergy(1.0), 1.0), (IntensityEnergy(), 3.0)], options
        )
        optimizer.initialize(blank, circle(32, 32, 10, 12))
        A, B = optimizer.assemble_system()
        assert A.shape == (24, 24)
        assert B.shape == (24,)
        np.testing.assert_allclose(optimizer.weights, [0.25, 0.75])
        # length contributes 0.25 * 2 * alpha / (2 * alpha) on the diagonal
        np.testing.assert_allclose(np.diag(A), 0.25)

    def test_collapsed_snake_fails(self, blank, circle):
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(1.0), 1.0)])
        with pytest.raises(OptimizerError):
            optimizer.run(blank, circle(10, 10, 1, 3))

    def test_max_iterations_argument(self, blank, circle):
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)])
        result = optimizer.run(blank, circle(32, 32, 15, 20), max_iterations=3)
        assert result.iterations == 3
        assert result.status is SnakeStatus.SUCCESS

    def test_resampling_keeps_spacing(self, blank, circle):
        options = OptimizerOptions(segment_length=4.0, termination=MaxIterations(4))
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)], options)
        result = optimizer.run(blank, circle(32, 32, 20, 8))
        distances = result.snakes[0].point_distances()
        assert result.snakes[0].num_points > 8
        assert distances.max() <= 1.5 * 4.0 + 1e-6

    def test_clockwise_snake_reversed_for_region_fit(self, circle):
        image = np.zeros((64, 64))
        image[20:44, 20:44] = 1.0
        options = OptimizerOptions(resample=False)
        optimizer = SnakeOptimizerVarCalc([(ChanVeseRegionFitEnergy(), 1.0)], options)
        optimizer.initialize(image, circle(32, 32, 10, 16, clockwise=True))
        assert optimizer.snake.is_ccw()

    def test_region_fit_grows_into_object(self, circle):
        image = np.zeros((64, 64))
        image[16:48, 16:48] = 1.0
        options = OptimizerOptions(resample=False, termination=MaxIterations(5))
        optimizer = SnakeOptimizerVarCalc([(ChanVeseRegionFitEnergy(), 1.0)], options)
        initial = Snake(circle(32, 32, 6, 16))
        result = optimizer.run(image, initial)
        assert result.snakes[0].area() > initial.area()

    def test_energy_sampling(self, blank, circle):
        options = OptimizerOptions(sample_energy_data=True, termination=MaxIterations(3))
        optimizer = SnakeOptimizerVarCalc(
            [(KassLengthEnergy(0.1), 1.0), (KassLengthEnergy(0.2), 1.0)], options
        )
        result = optimizer.run(blank, circle(32, 32, 15, 20))
        table = result.energy_table
        assert list(table.columns) == ["iteration", "sum", "per_point", "length", "length_2"]
        assert len(table) == 4
        assert table["iteration"].tolist() == [1, 2, 3, 3]

    def test_intermediate_snakes(self, blank, circle):
        options = OptimizerOptions(intermediate_interval=2, termination=MaxIterations(4))
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)], options)
        result = optimizer.run(blank, circle(32, 32, 15, 20))
        assert len(result.intermediate_snakes) == 2
        assert len(result.intermediate_snakes[0]) == 1

    def test_exclude_mask_shape_checked(self, blank, circle):
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)])
        with pytest.raises(ValueError):
            optimizer.initialize(blank, circle(32, 32, 15, 20), np.zeros((3, 3), dtype=bool))

    def test_energy_init_failure_aborts(self, blank, circle):
        energy = ChanVeseRegionFitEnergy(image=np.zeros((8, 8)))
        optimizer = SnakeOptimizerVarCalc([(energy, 1.0)])
        with pytest.raises(EnergyInitError):
            optimizer.run(blank, circle(32, 32, 15, 20))

    def test_clone_copies_energies(self):
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 2.0)])
        clone = optimizer.clone()
        assert clone.energies.energies[0] is not optimizer.energies.energies[0]
        assert clone.energies.weights == [2.0]
        assert clone.termination is not optimizer.termination

    def test_invalid_options(self):
        with pytest.raises(ValueError):
            SnakeOptimizerVarCalc([(KassLengthEnergy(), 1.0)], OptimizerOptions(segment_length=0))


class TestGreedyOptimizer:
    """Discrete neighborhood search."""

    def test_default_options(self):
        optimizer = SnakeOptimizerGreedy([(ConstantEnergy(), 1.0)])
        assert optimizer.options.method == "greedy"
        assert optimizer.options.segment_length == 25.0

    def test_energies_never_normalized(self, blank, circle):
        options = OptimizerOptions(
            method="greedy",
            energy_normalization=EnergyNormalizationMode.BALANCED_DERIVATIVES,
            resample=False,
            termination=MaxIterations(1),
        )
        length, curvature = KassLengthEnergy(2.0), KassCurvatureEnergy(3.0)
        optimizer = SnakeOptimizerGreedy([(length, 1.0), (curvature, 1.0)], options)
        assert optimizer.normalization_mode is EnergyNormalizationMode.NONE

        optimizer.initialize(blank, circle(32, 32, 10, 16))
        assert length.norm_factor == 1.0
        assert curvature.norm_factor == 1.0

    def test_length_energy_shrinks_snake(self, blank, circle):
        options = OptimizerOptions.greedy_defaults(resample=False, termination=MaxIterations(3))
        optimizer = SnakeOptimizerGreedy([(KassLengthEnergy(1.0), 1.0)], options)
        initial = Snake(circle(32, 32, 10, 16))
        result = optimizer.run(blank, initial)
        assert optimizer.scale_factor == 1.0
        assert result.snakes[0].length() < initial.length()

    def test_done_when_nothing_moves(self, blank, circle):
        options = OptimizerOptions.greedy_defaults(resample=False)
        optimizer = SnakeOptimizerGreedy([(IntensityEnergy(), 1.0)], options)
        initial = circle(32, 32, 10, 16)
        result = optimizer.run(blank, initial)
        assert result.status is SnakeStatus.DONE
        assert result.iterations == 1
        np.testing.assert_allclose(result.snakes[0].points, initial)

    def test_accepts_non_derivable_energies(self, blank, circle):
        options = OptimizerOptions.greedy_defaults(resample=False)
        optimizer = SnakeOptimizerGreedy([(ConstantEnergy(), 1.0)], options)
        result = optimizer.run(blank, circle(32, 32, 10, 16))
        assert result.status is SnakeStatus.DONE

    def test_points_stay_inside_image(self, circle):
        image = np.zeros((32, 32))
        image[:, :2] = 1.0
        options = OptimizerOptions.greedy_defaults(resample=False, termination=MaxIterations(3))
        optimizer = SnakeOptimizerGreedy([(IntensityEnergy(), 1.0)], options)
        result = optimizer.run(image, circle(8, 16, 8, 12))
        points = result.snakes[0].points
        assert points.min() >= 0
        assert points.max() <= 31


class TestTermination:
    """Termination criteria."""

    @staticmethod
    def _observed(snake, previous=None, iteration=1):
        return SimpleNamespace(
            snake=snake, previous_snake=previous, iteration=iteration, width=64, height=64
        )

    def test_max_iterations(self, circle):
        criterion = MaxIterations(3)
        opt = self._observed(Snake(circle(32, 32, 10, 16)), iteration=2)
        criterion.init(opt)
        assert criterion.check() is SnakeStatus.SUCCESS
        opt.iteration = 3
        assert criterion.check() is SnakeStatus.DONE
        with pytest.raises(ValueError):
            MaxIterations(0)

    def test_area_difference(self, circle):
        snake = Snake(circle(32, 32, 10, 16))
        criterion = AreaDifference(fraction=0.01)
        opt = self._observed(snake, previous=snake.copy())
        criterion.init(opt)
        assert criterion.check() is SnakeStatus.DONE
        opt.snake = Snake(circle(32, 32, 14, 16))
        assert criterion.check() is SnakeStatus.SUCCESS
        opt.iteration = 101
        assert criterion.check() is SnakeStatus.DONE

    def test_sliding_area_difference(self, circle):
        criterion = SlidingAreaDifference(fraction=0.001, window=3, offset=2)
        criterion.init(self._observed(Snake(circle(32, 32, 10, 16))))
        statuses = [criterion.check() for _ in range(5)]
        assert statuses[:4] == [SnakeStatus.SUCCESS] * 4
        assert statuses[4] is SnakeStatus.DONE

    def test_sliding_area_growing_snake(self, circle):
        criterion = SlidingAreaDifference(fraction=0.001, window=2, offset=1)
        opt = self._observed(Snake(circle(32, 32, 5, 16)))
        criterion.init(opt)
        for radius in range(5, 15):
            opt.snake = Snake(circle(32, 32, radius, 16))
            assert criterion.check() is SnakeStatus.SUCCESS

    def test_motion_difference(self, circle):
        snake = Snake(circle(32, 32, 10, 16))
        criterion = MotionDifference(fraction=0.5)
        opt = self._observed(snake, previous=snake.copy())
        criterion.init(opt)
        assert criterion.resting_fraction() == 1.0
        assert criterion.check() is SnakeStatus.DONE

        moved = Snake(snake.points + 1.0)
        opt.snake = moved
        assert criterion.resting_fraction() == 0.0
        assert criterion.check() is SnakeStatus.SUCCESS

    def test_inserted_points_count_as_moving(self, circle):
        snake = Snake(circle(32, 32, 10, 8))
        resampled = snake.copy()
        resampled.resample(2.0)
        criterion = MotionDifference(fraction=0.5)
        criterion.init(self._observed(resampled, previous=snake))
        assert criterion.resting_fraction() == pytest.approx(8 / resampled.num_points)

    def test_copy_keeps_parameters(self):
        criterion = SlidingAreaDifference(0.01, window=5, offset=3).copy()
        assert (criterion.fraction, criterion.window, criterion.offset) == (0.01, 5, 3)


class TestStepSize:
    """Step size strategies."""

    def test_constant_step_resets_after_resampling(self, blank, circle):
        optimizer = SnakeOptimizerVarCalc([(KassLengthEnergy(0.1), 1.0)])
        optimizer.initialize(blank, circle(32, 32, 15, 20))
        n = optimizer.snake.num_points
        assert isinstance(optimizer.step_size, ConstantStepSize)
        np.testing.assert_allclose(optimizer.gamma, np.full(2 * n, 0.5))
        reset = optimizer.step_size.adapt(np.ones(3))
        np.testing.assert_allclose(reset, np.full(2 * n, 0.5))

    def test_external_energy_step_size(self, stub, circle):
        image = np.zeros((64, 64))
        image[32, :] = 1
        energy = DistanceEnergy()
        snake = Snake([[10, 32], [20, 40], [5, 40]])
        opt = stub(snake, image=image, energies=[energy])
        energy.init(opt)

        step = ExternalEnergyStepSize(factor=2.0)
        assert step.init(opt)
        gamma = step.adapt(None)
        expected = np.sqrt(energy.get_values(snake.pixel_points())) * 2.0
        np.testing.assert_allclose(gamma, np.concatenate([expected, expected]))
        # points on the foreground do not move
        assert gamma[0] == 0.0

    def test_external_step_size_needs_distance_energy(self, blank, circle):
        optimizer = SnakeOptimizerVarCalc(
            [(KassLengthEnergy(0.1), 1.0)], step_size=ExternalEnergyStepSize()
        )
        with pytest.raises(OptimizerError):
            optimizer.initialize(blank, circle(32, 32, 15, 20))

    def test_external_step_size_run(self, circle):
        image = np.zeros((64, 64))
        image[10:54, 10] = 1
        image[10:54, 53] = 1
        image[10, 10:54] = 1
        image[53, 10:54] = 1
        options = OptimizerOptions(
            step_size=ExternalEnergyStepSize(factor=0.5),
            termination=MaxIterations(3),
        )
        optimizer = SnakeOptimizerVarCalc([(DistanceEnergy(), 1.0)], options)
        result = optimizer.run(image, circle(32, 32, 15, 24))
        assert result.iterations == 3
        assert np.all(np.isfinite(result.snakes[0].points))
