from common_lib.service import Service

__all__ = ["Service"]
