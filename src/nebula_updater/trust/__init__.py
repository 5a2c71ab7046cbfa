"""Trust anchor bootstrap and verified manifest resolution."""

from nebula_updater.trust.bootstrap import TrustBootstrapper
from nebula_updater.trust.resolver import ManifestResolver, ResolvedManifest

__all__ = ["ManifestResolver", "ResolvedManifest", "TrustBootstrapper"]
