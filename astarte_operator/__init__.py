# CRITICAL: Apply Kopf patches BEFORE any other imports
# This must be the first import to patch kopf._cogs.helpers.thirdparty
# before Kopf's internal modules are loaded, so that kopf recognizes
# kubernetes_asyncio models (kopf.adopt on V1 objects).
from astarte_operator.utils.override import patch_kopf_thirdparty
patch_kopf_thirdparty()

import os  # noqa: E402
from dotenv import load_dotenv, find_dotenv  # noqa: E402

__version__ = "1.0.0"

try:
    env_file = os.environ.get("ENV_FILE", ".env")
    path = find_dotenv(filename=env_file, raise_error_if_not_found=True)
    print(f"Loading environment variables from {path}")
    load_dotenv(dotenv_path=path)
except OSError:
    # No file to set environment variables
    pass

# Now safe to import handlers (which import kopf)  # noqa: E402
from astarte_operator.handlers import (  # noqa: E402
    astarte,
    liveness,
)

__all__ = [
    "astarte",
    "liveness",
]
