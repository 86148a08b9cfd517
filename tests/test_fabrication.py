# tests/test_fabrication.py
import numpy as np
import pytest

from core.fabrication import (
    FurnitureBuild,
    GhostPreviewBuilder,
    JointInstancer,
    MassEstimator,
    MeshMergeError,
    StructuralCoreBuilder,
    TriangleSoup,
    concatenate,
    merge_soups,
)


def _axis_extent(soup: TriangleSoup, start, end):
    """Projections of every vertex onto the edge axis, and distances from it."""
    start = np.asarray(start, dtype=float)
    direction = np.asarray(end, dtype=float) - start
    length = np.linalg.norm(direction)
    direction /= length
    rel = soup.vertices - start
    along = rel @ direction
    across = np.linalg.norm(rel - along[:, None] * direction, axis=1)
    return along, across, length


def _soup(count: int, offset: float = 0.0) -> TriangleSoup:
    tris = np.tile(np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float), (count, 1, 1))
    return TriangleSoup(triangles=tris + offset)


# =============================================================================
# Structural cores
# =============================================================================


class TestStructuralCoreBuilder:
    """Tests for the straight reinforcing cylinder."""

    @pytest.fixture
    def builder(self):
        return StructuralCoreBuilder(sections=6)

    def test_vertical_edge(self, builder):
        core = builder.build([0, 0, 0], [0, 1, 0], 0.008)
        low, high = core.vertices.min(axis=0), core.vertices.max(axis=0)
        assert low[1] == pytest.approx(0.0, abs=1e-12)
        assert high[1] == pytest.approx(1.0)
        assert np.abs(core.vertices[:, [0, 2]]).max() <= 0.008 + 1e-12

    @pytest.mark.parametrize(
        "start,end",
        [
            ([0, 0, 0], [2, 0, 0]),
            ([0.1, 0.2, 0.3], [-0.4, 0.9, 0.5]),
            ([0, 1, 0], [0, 0, 0]),
        ],
    )
    def test_spans_edge(self, builder, start, end):
        """The core runs from start to end with radius core_thickness."""
        core = builder.build(start, end, 0.01)
        along, across, length = _axis_extent(core, start, end)
        assert along.min() == pytest.approx(0.0, abs=1e-9)
        assert along.max() == pytest.approx(length)
        assert across.max() <= 0.01 + 1e-9

    def test_core_is_closed(self, builder):
        core = builder.build([0, 0, 0], [0.3, 0.4, 0.0], 0.008)
        mesh = core.to_trimesh(process=True)
        assert mesh.is_watertight
        assert mesh.volume > 0

    def test_disabled(self, builder):
        assert builder.build([0, 0, 0], [1, 0, 0], 0.008, enabled=False) is None

    def test_template_is_not_mutated(self, builder):
        before = builder.template.triangles.copy()
        builder.build([0, 0, 0], [1, 2, 3], 0.01)
        assert np.array_equal(builder.template.triangles, before)


# =============================================================================
# Ghost previews
# =============================================================================


class TestGhostPreviewBuilder:
    """Tests for the thin preview cylinders."""

    def test_centred_on_midpoint(self):
        start, end = [0.0, 0.0, 0.0], [0.0, 0.0, 2.0]
        ghost = GhostPreviewBuilder().build(start, end)
        along, across, length = _axis_extent(ghost, start, end)
        assert along.min() == pytest.approx(0.0, abs=1e-9)
        assert along.max() == pytest.approx(length)
        assert across.max() <= 0.003 + 1e-9

    def test_oblique_edge(self):
        start, end = [0.1, 0.5, -0.2], [0.7, 0.1, 0.4]
        ghost = GhostPreviewBuilder(radius=0.005).build(start, end)
        along, across, length = _axis_extent(ghost, start, end)
        assert along.min() == pytest.approx(0.0, abs=1e-9)
        assert along.max() == pytest.approx(length)
        assert across.max() <= 0.005 + 1e-9

    def test_disabled(self):
        assert GhostPreviewBuilder().build([0, 0, 0], [1, 0, 0], enabled=False) is None


# =============================================================================
# Joints
# =============================================================================


class TestJointInstancer:
    """Tests for instanced joint spheres."""

    @pytest.fixture
    def nodes(self):
        return np.array([[0, 0, 0], [1, 0, 0], [0.5, 0.8, -0.2]], dtype=float)

    def test_one_instance_per_node(self, nodes):
        joints = JointInstancer().build(nodes, 0.032)
        assert joints.count == 3
        assert np.allclose(joints.positions, nodes)

    def test_instances_are_pure_translations(self, nodes):
        """No rotation or scale in any joint transform."""
        joints = JointInstancer().build(nodes, 0.032)
        assert np.allclose(joints.transforms[:, :3, :3], np.eye(3))
        assert np.allclose(joints.transforms[:, 3], [0, 0, 0, 1])

    def test_sphere_radius(self, nodes):
        joints = JointInstancer().build(nodes, 0.032)
        radii = np.linalg.norm(joints.base.vertices, axis=1)
        assert radii.max() == pytest.approx(0.032)

    def test_baked_copies_sit_on_nodes(self, nodes):
        joints = JointInstancer().build(nodes, 0.032)
        for soup, node in zip(joints.baked(), nodes):
            center = (soup.vertices.min(axis=0) + soup.vertices.max(axis=0)) / 2
            assert np.allclose(center, node, atol=1e-9)
            assert soup.count == joints.base.count

    def test_no_nodes(self):
        joints = JointInstancer().build(np.zeros((0, 3)), 0.032)
        assert joints.count == 0
        assert joints.baked() == []


# =============================================================================
# Merging
# =============================================================================


class TestMerge:
    """Tests for soup concatenation."""

    def test_counts_are_additive(self):
        merged = merge_soups([_soup(2), _soup(3), _soup(1)])
        assert merged.count == 6

    def test_order_is_preserved(self):
        merged = merge_soups([_soup(1, offset=0.0), _soup(1, offset=5.0)])
        assert np.allclose(merged.triangles[0], _soup(1).triangles[0])
        assert np.allclose(merged.triangles[1], _soup(1, offset=5.0).triangles[0])

    def test_empty_input(self):
        assert merge_soups([]) is None

    def test_attributes_are_concatenated(self):
        a = _soup(2)
        a.attributes["uv"] = np.zeros((2, 3, 2))
        b = _soup(1)
        b.attributes["uv"] = np.ones((1, 3, 2))
        merged = concatenate([a, b])
        assert merged.attributes["uv"].shape == (3, 3, 2)

    def test_mismatched_attributes_raise(self):
        a = _soup(1)
        a.attributes["uv"] = np.zeros((1, 3, 2))
        with pytest.raises(MeshMergeError):
            concatenate([a, _soup(1)])

    def test_mismatched_widths_raise(self):
        a, b = _soup(1), _soup(1)
        a.attributes["uv"] = np.zeros((1, 3, 2))
        b.attributes["uv"] = np.zeros((1, 3, 3))
        with pytest.raises(MeshMergeError) as exc:
            concatenate([a, b])
        assert exc.value.error_type == "merge"

    def test_mismatch_yields_no_merge(self):
        a = _soup(1)
        a.attributes["uv"] = np.zeros((1, 3, 2))
        assert merge_soups([a, _soup(1)]) is None


# =============================================================================
# Mass estimate
# =============================================================================


class TestMassEstimator:
    """Tests for filament usage figures."""

    def test_one_metre_of_one_centimetre_radius(self):
        stats = MassEstimator().estimate(1.0, 0.01)
        assert stats.total_length == 1.0
        assert stats.volume_cm3 == pytest.approx(314.159, rel=1e-5)
        assert stats.estimated_weight == pytest.approx(389.557, rel=1e-5)
        assert stats.estimated_cost == pytest.approx(7.791, rel=1e-3)

    def test_zero_length(self):
        stats = MassEstimator().estimate(0.0, 0.02)
        assert stats.volume_cm3 == 0.0
        assert stats.estimated_weight == 0.0
        assert stats.estimated_cost == 0.0

    def test_custom_material(self):
        stats = MassEstimator(density=2.0, price_per_kg=50.0).estimate(1.0, 0.01)
        assert stats.estimated_weight == pytest.approx(2 * 314.159, rel=1e-5)
        assert stats.estimated_cost == pytest.approx(2 * 314.159 / 1000 * 50, rel=1e-5)

    def test_to_dict(self):
        data = MassEstimator().estimate(2.0, 0.02).to_dict()
        assert set(data) == {"filament_length", "volume_cm3", "estimated_weight", "estimated_cost"}
        assert data["filament_length"] == 2.0


# =============================================================================
# Soups and builds
# =============================================================================


class TestTriangleSoup:
    """Tests for the triangle soup container."""

    def test_transformed_returns_copy(self):
        soup = _soup(1)
        moved = soup.transformed(np.diag([2.0, 2.0, 2.0, 1.0]))
        assert np.allclose(moved.triangles, soup.triangles * 2)
        assert np.allclose(soup.triangles[0, 1], [1, 0, 0])

    def test_release_drops_buffers(self):
        soup = _soup(4)
        soup.release()
        assert soup.released
        assert soup.is_empty

    def test_from_indexed_flattens(self):
        vertices = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]], dtype=float)
        faces = np.array([[0, 1, 2], [1, 3, 2]])
        soup = TriangleSoup.from_indexed(vertices, faces)
        assert soup.count == 2
        assert soup.vertices.shape == (6, 3)


class TestFurnitureBuild:
    """Tests for build ownership."""

    def test_ghost_never_exported(self):
        build = FurnitureBuild(tube=_soup(2), core=_soup(3), ghost=_soup(7))
        exported = build.export_soups()
        assert sum(s.count for s in exported) == 5

    def test_empty_build_is_not_exportable(self):
        assert not FurnitureBuild().is_exportable

    def test_release(self):
        tube = _soup(2)
        build = FurnitureBuild(tube=tube, core=_soup(1), ghost=_soup(1))
        build.release()
        assert tube.released
        assert build.tube is None
        assert build.core is None
        assert build.ghost is None
        assert not build.is_exportable
