"""Projection-based segmentation: PCA, SVD and ICA.

All three techniques stack the voxel curves into a ``[voxels, frames]``
matrix, compute a basis, project every curve onto it and put each voxel in
the cluster numbered after its largest coefficient (1-based).
"""

from __future__ import annotations

import io
import logging
import warnings

import numpy as np

from tacluster.core.types import AuxiliaryInfo, ClusteringParams, MatrixType, Voxel
from tacluster.core.volume import VoxelSource, curve_matrix
from tacluster.errors import DecompositionError
from tacluster.techniques.base import ClusteringTechnique, ProgressCallback, report
from tacluster.techniques.registry import register_technique

logger = logging.getLogger(__name__)


class DecompositionTechnique(ClusteringTechnique):
    """Shared projection and argmax assignment."""

    aux_name = ""

    def init(self) -> None:
        super().init()
        self.voxels: list[Voxel] = []
        self.projections: np.ndarray | None = None
        self.basis: np.ndarray | None = None

    def process(
        self,
        source: VoxelSource,
        params: ClusteringParams,
        progress: ProgressCallback | None = None,
    ) -> None:
        report(progress, "Building curve matrix...")
        self.voxels, matrix = curve_matrix(source, params.skip_noisy)
        if len(self.voxels) < 2:
            raise DecompositionError(
                f"{self.name.upper()} needs at least 2 voxels, got {len(self.voxels)}"
            )
        logger.info(f"{self.name.upper()}: {matrix.shape[0]} voxels x {matrix.shape[1]} frames")

        report(progress, f"{self.name.upper()}: computing basis...")
        try:
            self.basis, self.projections = self.decompose(matrix, params)
        except np.linalg.LinAlgError as e:
            raise DecompositionError(f"{self.name.upper()} decomposition failed: {e}") from e

        report(progress, "Assigning voxels...")
        for voxel, row in zip(self.voxels, self.projections):
            self.add_to_cluster(voxel, int(np.argmax(row)) + 1)

        self.additional_info = AuxiliaryInfo(self.aux_name, _matrix_text(self.basis))
        logger.info(f"{len(self.clusters)} clusters formed")

    def decompose(
        self, matrix: np.ndarray, params: ClusteringParams
    ) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(basis, projections)``; basis columns are components."""
        raise NotImplementedError


@register_technique("pca")
class PCATechnique(DecompositionTechnique):
    """Eigen-decomposition of the frame covariance or correlation matrix.

    Components are ordered by descending eigenvalue. The number of clusters
    equals the number of frames at most.
    """

    description = "Principal component analysis with argmax assignment."
    recommended_for = "Quick exploratory segmentation."
    aux_name = "pca_vectors"

    def init(self) -> None:
        super().init()
        self.eigenvalues: np.ndarray | None = None

    def decompose(self, matrix, params):
        centered = matrix - matrix.mean(axis=0)
        if params.matrix is MatrixType.CORRELATION:
            with np.errstate(divide="ignore", invalid="ignore"):
                m = np.corrcoef(centered, rowvar=False)
            m = np.nan_to_num(np.atleast_2d(m))
        else:
            m = np.atleast_2d(np.cov(centered, rowvar=False))

        values, vectors = np.linalg.eigh(m)
        order = np.argsort(values)[::-1]
        self.eigenvalues = values[order]
        vectors = vectors[:, order]
        return vectors, centered @ vectors


@register_technique("svd")
class SVDTechnique(DecompositionTechnique):
    """Singular value decomposition of the mean-centred curve matrix."""

    description = "Singular value decomposition with argmax assignment."
    recommended_for = "Quick exploratory segmentation."
    aux_name = "svd_vectors"

    def init(self) -> None:
        super().init()
        self.singular_values: np.ndarray | None = None

    def decompose(self, matrix, params):
        centered = matrix - matrix.mean(axis=0)
        _, s, vt = np.linalg.svd(centered, full_matrices=False)
        self.singular_values = s
        basis = vt.T
        return basis, centered @ basis


@register_technique("ica")
class ICATechnique(DecompositionTechnique):
    """FastICA on the raw curves.

    A solver that does not converge within ``ica_max_iterations`` raises
    ``DecompositionError`` instead of returning a partial basis.
    """

    description = "Independent component analysis (FastICA) with argmax assignment."
    recommended_for = "Separating overlapping kinetic sources."
    aux_name = "ica_sources"

    @classmethod
    def check_dependencies(cls) -> tuple[bool, str]:
        try:
            import sklearn  # noqa: F401

            return True, "scikit-learn is available."
        except ImportError:
            return False, "scikit-learn is not installed. Install with: pip install scikit-learn"

    def decompose(self, matrix, params):
        from sklearn.decomposition import FastICA
        from sklearn.exceptions import ConvergenceWarning

        n_components = min(params.n_components, matrix.shape[1], matrix.shape[0])
        if n_components < params.n_components:
            logger.warning(
                f"ICA: reducing components from {params.n_components} to {n_components}"
            )
        ica = FastICA(
            n_components=n_components,
            max_iter=params.ica_max_iterations,
            tol=params.ica_tolerance,
            random_state=params.random_state,
            whiten="unit-variance",
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            try:
                projections = ica.fit_transform(matrix)
            except ConvergenceWarning as e:
                raise DecompositionError(
                    f"ICA did not converge within {params.ica_max_iterations} iterations"
                ) from e
        # Rows of components_ unmix a curve; store them as columns.
        return ica.components_.T, projections


def _matrix_text(matrix: np.ndarray) -> str:
    buffer = io.StringIO()
    np.savetxt(buffer, matrix, fmt="%.6g", delimiter="\t")
    return buffer.getvalue()
