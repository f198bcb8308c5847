"""
Domain layer for LaTeX rendering.
Provides the gateways (stage runner, raster inspector), the workspace manager,
the outcome classifier and the render pipeline, so front-ends (HTTP or others)
can use the same core logic.
"""

from .interfaces import Artifact, ArtifactKind, ArtifactRequest, RasterInspector, StageResult, StageRunner
from .outcomes import FailureReason, KnownFailure, StageOutcome, Success, UnknownFailure, classify
from .service import RenderResult, RenderService, RenderState
from .stages import ResolutionLadder, StageKind
from .workspace import Workspace, WorkspaceManager
