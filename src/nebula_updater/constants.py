"""Centralized constants for the nebula updater."""

# Version strings are timestamps, e.g. "2024.01.01-00.00.00"
VERSION_LAYOUT = "%Y.%m.%d-%H.%M.%S"

# Versions stay valid for this many calendar years after release
VALIDITY_YEARS = 2

# Trust material and manifest
ROOT_FILENAME = "root.json"
INITIAL_ROOT_FILENAME = "1.root.json"
INDEX_FILENAME = "index.json"
TRUST_DIRNAME = "tmp"
DOWNLOAD_DIRNAME = "download"

# Product tracked in the manifest
DEFAULT_PRODUCT_ID = "nebula-standalone"

# Remote repositories
DEFAULT_METADATA_URL = "https://sorayaormazabalmayo.github.io/TUF_Repository_YubiKey_Vault/metadata"
DEFAULT_TARGETS_URL = "https://sorayaormazabalmayo.github.io/TUF_Repository_YubiKey_Vault/targets"
DEFAULT_ARTIFACT_BASE_URL = (
    "https://artifactregistry.googleapis.com/download/v1/projects/polished-medium-445107-i9"
    "/locations/europe-southwest1/repositories/nebula-storage"
)
DEFAULT_ARTIFACT_PACKAGE = "nebula-package"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Artifact download
DEFAULT_ARTIFACT_NAME = "downloaded-file"
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Polling
POLL_INTERVAL_SECONDS = 60
HTTP_TIMEOUT_SECONDS = 30
