from .cache import ResolutionCache
from .key_manager import KeyManager
from .resolver import KeyVersionResolver
from .signer_service import SignerService

__all__ = ["KeyManager", "KeyVersionResolver", "ResolutionCache", "SignerService"]
