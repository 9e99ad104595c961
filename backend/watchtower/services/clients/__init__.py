"""
clients package — HTTP access to externally hosted app projects.

Expose high-level client classes so services can import without touching
the concrete HTTP implementation directly.
"""

from .project_rest_client import (  # noqa: F401
    ProjectClientConfigurationError,
    ProjectClientError,
    ProjectRestClient,
)
