from plumbum import local
from plumbum.typed_env import TypedEnv

from . import __version__
from .utils import normalize_mount_options


class Config(TypedEnv):
    class Path(TypedEnv.Str):
        convert = staticmethod(local.path)

    plugin_name = TypedEnv.Str("X_NFS_PLUGIN_NAME", default="nfs-remote-driver")
    plugin_version = __version__

    storage_api_url = TypedEnv.Str("X_NFS_STORAGE_API_URL", default="http://127.0.0.1:9999/ubiquity_storage")
    backend_name = TypedEnv.Str("X_NFS_BACKEND", default="spectrum-scale-nfs")
    client_config = TypedEnv.Str("X_NFS_CLIENT_CONFIG", default="")
    ssl_verify = TypedEnv.Bool("X_NFS_ENABLE_SSL_VERIFICATION", default=False)
    timeout = TypedEnv.Int("X_NFS_API_TIMEOUT", default=30)

    local_mount_root = Path("X_NFS_LOCAL_MOUNT_ROOT", default=local.path("/mnt"))
    use_sudo = TypedEnv.Bool("X_NFS_USE_SUDO", default=True)
    command_timeout = TypedEnv.Int("X_NFS_COMMAND_TIMEOUT", default=60)
    _mount_options = TypedEnv.Str("X_NFS_MOUNT_OPTIONS", default="")  # For example: "vers=3,nolock,proto=tcp"

    log_level = TypedEnv.Str("X_NFS_LOG_LEVEL", default="info")

    @property
    def mount_options(self):
        return normalize_mount_options(self._mount_options)
