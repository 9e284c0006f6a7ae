"""Tests for global assembly of stiffness and mass matrices."""

import numpy as np
import pytest
from scipy import sparse

from facet_shell.core.assembler import SysmatAssemblerSparseSymm
from facet_shell.core.bc import DirichletCondition, apply_dirichlet
from facet_shell.core.errors import AssemblyError, DofFieldError, GeometryError, MaterialError
from facet_shell.core.fields import NDOF, RX, RZ, UX, DofField
from facet_shell.core.material import FieldMaterial, IsotropicMaterial
from facet_shell.core.mesh import ElementSet, ElementType, HemisphereMesh, RectangleMesh
from facet_shell.elements import ShellIsoP, ShellSRI, make_femm


@pytest.fixture
def steel():
    return IsotropicMaterial(name="steel", E=210e9, nu=0.3, rho=7850)


@pytest.fixture
def plate():
    return RectangleMesh.create_rectangle(2.0, 1.0, 3, 2)


@pytest.fixture
def free_dchi(plate):
    dchi = DofField(plate.node_count)
    dchi.number_dofs()
    return dchi


def dense_reference(femm, coords, dchi):
    K = np.zeros((dchi.nfreedofs, dchi.nfreedofs))
    for e, conn in enumerate(femm.element_set.conn):
        dofs = dchi.gather_dofnums(conn)
        keep = dofs >= 0
        Ke = femm.element_stiffness(coords, e)
        K[np.ix_(dofs[keep], dofs[keep])] += Ke[np.ix_(keep, keep)]
    return K


class TestSysmatAssembler:
    def test_duplicates_are_summed(self):
        assembler = SysmatAssemblerSparseSymm().start_assembly(2, 2, 3)
        assembler.assemble(np.ones((2, 2)), [0, 1])
        assembler.assemble(2 * np.ones((2, 2)), [1, 2])
        K = assembler.make_matrix()
        expected = np.array([[1, 1, 0], [1, 3, 2], [0, 2, 2]], dtype=float)
        assert sparse.issparse(K)
        assert np.allclose(K.toarray(), expected)

    def test_constrained_rows_are_dropped(self):
        assembler = SysmatAssemblerSparseSymm().start_assembly(3, 1, 2)
        elmat = np.arange(9.0).reshape(3, 3)
        elmat = elmat + elmat.T
        assembler.assemble(elmat, [1, -1, 0])
        K = assembler.make_matrix()
        assert np.allclose(K.toarray(), [[elmat[2, 2], elmat[2, 0]], [elmat[0, 2], elmat[0, 0]]])

    def test_buffer_grows(self):
        assembler = SysmatAssemblerSparseSymm().start_assembly(2, 1, 4)
        for i in range(3):
            assembler.assemble(np.eye(2), [i, i + 1])
        assert assembler.buffer_pointer == 12
        assert np.allclose(assembler.make_matrix().diagonal(), [1, 2, 2, 1])

    def test_symmetrize(self):
        assembler = SysmatAssemblerSparseSymm().start_assembly(2, 1, 2)
        assembler.assemble(np.array([[1.0, 2.0], [4.0, 1.0]]), [0, 1])
        assert np.allclose(assembler.make_matrix().toarray(), [[1, 3], [3, 1]])

    def test_out_of_range_raises(self):
        assembler = SysmatAssemblerSparseSymm().start_assembly(2, 1, 2)
        with pytest.raises(IndexError):
            assembler.extend([0, 2], [0, 0], [1.0, 1.0])

    def test_requires_start(self):
        assembler = SysmatAssemblerSparseSymm()
        with pytest.raises(RuntimeError):
            assembler.assemble(np.eye(2), [0, 1])
        assembler.start_assembly(2, 1, 2).make_matrix()
        with pytest.raises(RuntimeError):
            assembler.make_matrix()


class TestStiffnessAssembly:
    @pytest.mark.parametrize("triangular", [False, True])
    def test_matches_sum_of_element_matrices(self, steel, triangular):
        mesh = RectangleMesh.create_rectangle(2.0, 1.0, 3, 2, triangular=triangular)
        dchi = DofField(mesh.node_count)
        dchi.number_dofs()
        femm = ShellSRI(mesh.element_sets[0], steel, 0.02)
        K = femm.stiffness(mesh.coords, None, None, dchi)
        assert K.shape == (mesh.node_count * NDOF,) * 2
        expected = dense_reference(femm, mesh.coords, dchi)
        assert np.allclose(K.toarray(), expected, rtol=1e-12, atol=1e-12 * np.abs(expected).max())

    def test_constraints_restrict_the_matrix(self, plate, free_dchi, steel):
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        K_full = femm.stiffness(plate.coords, None, None, free_dchi).toarray()

        dchi = DofField(plate.node_count)
        clamped = plate.select_nodes([0, 0, -np.inf, np.inf, -np.inf, np.inf], inflate=1e-9)
        apply_dirichlet(dchi, [DirichletCondition(clamped, range(NDOF))])
        dchi.number_dofs()
        K = femm.stiffness(plate.coords, None, None, dchi).toarray()

        idx = free_dchi.dofnums[~dchi.is_fixed]
        assert K.shape == (dchi.nfreedofs, dchi.nfreedofs)
        assert np.allclose(K, K_full[np.ix_(idx, idx)], rtol=0.0, atol=1e-12 * np.abs(K_full).max())

    def test_symmetric(self, plate, free_dchi, steel):
        K = ShellSRI(plate.element_sets[0], steel, 0.02).stiffness(plate.coords, None, None, free_dchi)
        assert abs(K - K.T).max() == 0.0

    @pytest.mark.parametrize("n_workers", [2, 3, 64])
    def test_worker_count_does_not_change_result(self, steel, n_workers):
        mesh = HemisphereMesh(10.0, 4, triangular=True).generate()
        dchi = DofField(mesh.node_count)
        dchi.set_ebc([0], UX)
        dchi.number_dofs()
        femm = ShellIsoP(mesh.element_sets[0], steel, 0.04).associate_geometry(mesh.coords)
        K1 = femm.stiffness(mesh.coords, None, None, dchi)
        Kn = femm.stiffness(mesh.coords, None, None, dchi, n_workers=n_workers)
        K1 = K1.toarray()
        assert np.allclose(Kn.toarray(), K1, rtol=0.0, atol=1e-13 * np.abs(K1).max())

    def test_custom_assembler(self, plate, free_dchi, steel):
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        K1 = femm.stiffness(plate.coords, None, None, free_dchi)
        K2 = femm.stiffness(
            plate.coords, None, None, free_dchi, assembler=SysmatAssemblerSparseSymm(symmetrize=False)
        )
        K1 = K1.toarray()
        # Symmetrization only removes round-off from the frame rotation.
        assert np.allclose(K2.toarray(), K1, rtol=0.0, atol=1e-12 * np.abs(K1).max())

    def test_invalid_worker_count(self, plate, free_dchi, steel):
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        with pytest.raises(ValueError):
            femm.stiffness(plate.coords, None, None, free_dchi, n_workers=0)


class TestAssemblyErrors:
    def test_unnumbered_field(self, plate, steel):
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        with pytest.raises(DofFieldError):
            femm.stiffness(plate.coords, None, None, DofField(plate.node_count))

    def test_field_size_mismatch(self, plate, steel):
        dchi = DofField(plate.node_count + 1)
        dchi.number_dofs()
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        with pytest.raises(DofFieldError):
            femm.stiffness(plate.coords, None, None, dchi)

    def test_displacement_field_mismatch(self, plate, free_dchi, steel):
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        with pytest.raises(DofFieldError):
            femm.stiffness(plate.coords, np.zeros((3, 3)), None, free_dchi)

    def test_connectivity_beyond_geometry(self, steel):
        coords = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=float)
        femm = ShellSRI(ElementSet([[0, 1, 3]], ElementType.T3), steel, 0.02)
        dchi = DofField(3)
        dchi.number_dofs()
        with pytest.raises(DofFieldError):
            femm.stiffness(coords, None, None, dchi)

    @pytest.mark.parametrize("n_workers", [1, 2])
    def test_degenerate_element(self, steel, n_workers):
        coords = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [2, 2, 0]], dtype=float)
        femm = ShellSRI(ElementSet([[0, 1, 2], [0, 2, 3]], ElementType.T3), steel, 0.02)
        dchi = DofField(4)
        dchi.number_dofs()
        with pytest.raises(AssemblyError) as excinfo:
            femm.stiffness(coords, None, None, dchi, n_workers=n_workers)
        assert excinfo.value.element == 1
        assert isinstance(excinfo.value.__cause__, GeometryError)

    def test_failing_material(self, plate, free_dchi, steel):
        def moduli(thickness, loc):
            if loc[0] > 1.5:
                raise KeyError("outside the table")
            return steel.tangent_moduli()

        femm = ShellSRI(plate.element_sets[0], FieldMaterial("table", moduli, steel.rho), 0.02)
        with pytest.raises(AssemblyError) as excinfo:
            femm.stiffness(plate.coords, None, None, free_dchi)
        assert isinstance(excinfo.value.__cause__, MaterialError)


class TestMassAssembly:
    def test_total_mass(self, plate, free_dchi, steel):
        t = 0.02
        M = make_femm(plate.element_sets[0], steel, t).mass(plate.coords, free_dchi)
        diag = M.diagonal().reshape(-1, NDOF)
        assert diag[:, UX].sum() == pytest.approx(steel.rho * t * 2.0)
        assert np.allclose(diag[:, RZ], diag[:, RX] * 1e-6)
        M = M.toarray()
        assert np.count_nonzero(M - np.diag(np.diag(M))) == 0

    def test_positive_definite_on_curved_mesh(self, steel):
        mesh = HemisphereMesh(10.0, 3).generate()
        dchi = DofField(mesh.node_count)
        dchi.number_dofs()
        M = ShellSRI(mesh.element_sets[0], steel, 0.04).mass(mesh.coords, dchi, n_workers=2).toarray()
        assert np.allclose(M, M.T)
        assert np.linalg.eigvalsh(M).min() > 0


class TestPETScAssembly:
    def test_matches_scipy(self, plate, steel):
        pytest.importorskip("petsc4py")
        from facet_shell.core.petsc_assembler import PETScAssembler, petsc_to_scipy

        dchi = DofField(plate.node_count)
        dchi.set_ebc([0, 1], RX)
        dchi.number_dofs()
        femm = ShellSRI(plate.element_sets[0], steel, 0.02)
        K_scipy = femm.stiffness(plate.coords, None, None, dchi)
        K_petsc = femm.stiffness(plate.coords, None, None, dchi, assembler=PETScAssembler())
        assert K_petsc.getSize() == K_scipy.shape
        K = petsc_to_scipy(K_petsc)
        assert np.allclose(K.toarray(), K_scipy.toarray(), atol=1e-9 * abs(K_scipy).max())
