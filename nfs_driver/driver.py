import inspect
from functools import wraps
from pprint import pformat

from .logging import logger
from .configuration import Config
from .exceptions import NfsDriverException
from .api_session import StorageApiSession
from .mounter import MountExecutor, MountStateProbe
from .controller import VolumeAttachmentController


################################################################
#
# Instrumentation
#
################################################################


class Instrumented:

    SILENCED = ["list_volumes"]

    @classmethod
    def logged(cls, func):

        method = func.__name__
        log = logger.debug if (method in cls.SILENCED) else logger.info
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            params = signature.bind(self, *args, **kwargs).arguments
            params.pop("self", None)

            log(f">>> {method}:")
            if params:
                for line in pformat(dict(params)).splitlines():
                    log(f"({method})    {line}")

            try:
                ret = func(self, *args, **kwargs)
            except NfsDriverException as exc:
                logger.error(f"<<< {method} FAILED: {exc.render(color=False)}")
                logger.debug("Traceback", exc_info=True)
                raise
            except Exception:
                logger.exception(f"Exception during {method}")
                raise
            if ret is not None:
                log(f"<<< {method}:")
                for line in pformat(ret).splitlines():
                    log(f"    {line}")
            log(f"--- {method}: Done")
            return ret

        return wrapper

    @classmethod
    def __init_subclass__(cls):
        for name, _ in inspect.getmembers(cls.__base__, inspect.isfunction):
            if name.startswith("_"):
                continue
            func = getattr(cls, name)
            setattr(cls, name, cls.logged(func))
        super().__init_subclass__()


################################################################
#
# Storage client interface
#
################################################################


class StorageClient:
    """Operations the volume plugin framework calls on a storage backend."""

    def activate(self):
        raise NotImplementedError()

    def create_volume(self, name, opts=None):
        raise NotImplementedError()

    def remove_volume(self, name, force_delete=False):
        raise NotImplementedError()

    def get_volume(self, name):
        raise NotImplementedError()

    def list_volumes(self):
        raise NotImplementedError()

    def attach(self, name):
        raise NotImplementedError()

    def detach(self, name):
        raise NotImplementedError()


################################################################
#
# NFS remote driver
#
################################################################


class NfsRemoteDriver(StorageClient, Instrumented):
    """
    Storage client for NFS volumes managed by a remote storage API.
    Lifecycle calls are forwarded to the storage API, attach/detach also change local mount state.
    """

    def __init__(self, session, config=None, executor=None, probe=None):
        self.config = Config() if config is None else config
        self.session = session
        self.controller = VolumeAttachmentController(
            remote=session,
            executor=executor or MountExecutor.from_config(self.config),
            probe=probe or MountStateProbe(),
            local_root=self.config.local_mount_root,
        )

    @classmethod
    def from_config(cls, config=None):
        config = Config() if config is None else config
        return cls(StorageApiSession.create(config=config), config=config)

    def activate(self):
        self.session.activate()

    def create_volume(self, name, opts=None):
        self.session.create_volume(name, opts)

    def remove_volume(self, name, force_delete=False):
        self.session.remove_volume(name, force_delete)

    def get_volume(self, name):
        return self.session.get_volume(name)

    def list_volumes(self):
        return self.session.list_volumes()

    def attach(self, name):
        return self.controller.attach(name)

    def detach(self, name):
        self.controller.detach(name)
