"""
Tests for transform spec parsing, composition and application.
"""

import numpy as np
import pytest

from terrain_displacement.alignment.pre_transform import (
    apply_transform,
    compose_transforms,
    load_transform_matrix,
    parse_transform_spec,
    save_transform_matrix,
)


IDENTITY_SPEC = "1 0 0 0  0 1 0 0  0 0 1 0  0 0 0 1"
SHIFT_SPEC = "1 0 0 10  0 1 0 -5  0 0 1 2  0 0 0 1"
SWAP_XY_SPEC = "0 1 0 0  1 0 0 0  0 0 1 0  0 0 0 1"


class TestParseTransformSpec:

    def test_identity(self):
        np.testing.assert_array_equal(parse_transform_spec(IDENTITY_SPEC), np.eye(4))

    def test_row_major_order(self):
        T = parse_transform_spec(SHIFT_SPEC)
        np.testing.assert_array_equal(T[:3, 3], [10.0, -5.0, 2.0])

    def test_scientific_notation_and_newlines(self):
        T = parse_transform_spec("1e0 0 0 1.5e2\n0 1 0 0\n0 0 1 0\n0 0 0 1")
        assert T[0, 3] == 150.0

    def test_from_file(self, tmp_path):
        path = tmp_path / "shift.txt"
        path.write_text("1 0 0 10\n0 1 0 -5\n0 0 1 2\n0 0 0 1\n")
        np.testing.assert_array_equal(parse_transform_spec(str(path)), parse_transform_spec(SHIFT_SPEC))

    @pytest.mark.parametrize("spec", ["1 0 0 0", " ".join(["1"] * 17), ""])
    def test_wrong_entry_count(self, spec):
        with pytest.raises(ValueError, match="must have 16 numeric entries"):
            parse_transform_spec(spec)

    def test_non_numeric_entry(self):
        spec = "1 0 0 0 0 1 0 0 0 0 one 0 0 0 0 1"
        with pytest.raises(ValueError, match="'transform' entry 11 is not a valid numeric value."):
            parse_transform_spec(spec)

    def test_non_finite_entry(self):
        spec = "1 0 0 0 0 1 0 0 0 0 1 0 0 0 0 inf"
        with pytest.raises(ValueError, match="entry 16"):
            parse_transform_spec(spec)


class TestComposeTransforms:

    def test_empty_is_identity(self):
        np.testing.assert_array_equal(compose_transforms([]), np.eye(4))
        np.testing.assert_array_equal(compose_transforms(None), np.eye(4))

    def test_multiplied_as_written(self):
        expected = parse_transform_spec(SWAP_XY_SPEC) @ parse_transform_spec(SHIFT_SPEC)
        np.testing.assert_array_equal(compose_transforms([SWAP_XY_SPEC, SHIFT_SPEC]), expected)
        # Order matters for non-commuting transforms
        assert not np.array_equal(compose_transforms([SHIFT_SPEC, SWAP_XY_SPEC]), expected)

    def test_invalid_spec_anywhere_raises(self):
        with pytest.raises(ValueError):
            compose_transforms([IDENTITY_SPEC, "1 2 3"])


class TestApplyTransform:

    def test_translation(self):
        pts = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
        out = apply_transform(pts, parse_transform_spec(SHIFT_SPEC))
        np.testing.assert_allclose(out, [[10.0, -5.0, 2.0], [11.0, -3.0, 5.0]])

    def test_composite_applies_rightmost_first(self):
        pts = np.array([[1.0, 2.0, 3.0]])
        out = apply_transform(pts, compose_transforms([SWAP_XY_SPEC, SHIFT_SPEC]))
        # shift to (11, -3, 5), then swap x and y
        np.testing.assert_allclose(out, [[-3.0, 11.0, 5.0]])

    def test_identity_returns_input(self):
        pts = np.array([[1.0, 2.0, 3.0]])
        np.testing.assert_array_equal(apply_transform(pts, np.eye(4)), pts)

    def test_projective_row_normalised(self):
        T = np.eye(4)
        T[3, 3] = 2.0
        out = apply_transform(np.array([[2.0, 4.0, 6.0]]), T)
        np.testing.assert_allclose(out, [[1.0, 2.0, 3.0]])

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="4x4"):
            apply_transform(np.zeros((1, 3)), np.eye(3))


class TestSaveLoad:

    def test_saved_file_is_a_valid_spec(self, tmp_path):
        T = compose_transforms([SWAP_XY_SPEC, SHIFT_SPEC])
        T[0, 3] = 0.1234567890123
        path = tmp_path / "T.txt"
        save_transform_matrix(T, str(path))

        np.testing.assert_array_equal(load_transform_matrix(str(path)), T)
        np.testing.assert_array_equal(parse_transform_spec(str(path)), T)

    def test_load_rejects_wrong_shape(self, tmp_path):
        path = tmp_path / "bad.txt"
        np.savetxt(path, np.eye(3))
        with pytest.raises(ValueError, match="4x4"):
            load_transform_matrix(str(path))
