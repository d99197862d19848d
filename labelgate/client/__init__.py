"""HTTP client utilities for talking to a running labelgate webhook.

Treat server responses as untrusted input.
"""

from .http import HttpResponse, LabelgateHttpClient  # noqa: F401
