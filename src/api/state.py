from typing import Optional

from api.backend import BackendAPI

# Global instance initialized at startup (or lazily by the first request)
backend: Optional[BackendAPI] = None
