import functools
import logging
from contextlib import contextmanager

from fastapi.params import Depends

LOG = logging.getLogger(__name__)


class Service:
    """Base class of singleton services.

    Every subclass is created once, when the application starts, and handed to the endpoints with dep(). Creating a
    second instance fails, so two parts of the app can't end up talking to different copies.
    """

    instance = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.instance = None
        original_init = cls.__init__

        @functools.wraps(original_init)
        def wrapped_init(self, *args, **kwargs):
            if cls.instance is not None:
                raise RuntimeError(f"{cls.__name__} is already initialized.")
            LOG.debug("Initializing service %s", cls.__name__)
            original_init(self, *args, **kwargs)
            # Only a fully constructed service is handed out.
            cls.instance = self

        cls.__init__ = wrapped_init

    @classmethod
    def _instance(cls):
        if cls.instance is None:
            raise RuntimeError(f"{cls.__name__} is not initialized.")
        return cls.instance

    @classmethod
    def dep(cls):
        """Returns a dependency for the service."""
        return Depends(cls._instance)

    @classmethod
    def reset(cls):
        """Forgets the current instance, so that the service can be initialized again."""
        LOG.debug("Resetting service %s", cls.__name__)
        cls.instance = None


@contextmanager
def running(*services: type[Service], **kwargs):
    """Initializes the services for the duration of the block. Keyword arguments are passed to each of them."""
    try:
        for service in services:
            service(**kwargs)
        yield [service.instance for service in services]
    finally:
        for service in services:
            service.reset()
