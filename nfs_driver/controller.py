"""
Attach/Detach orchestration.

Attach turns "volume exists on the storage API" into "NFS share mounted under the local root",
Detach reverses it. Steps run strictly in order. Callers must serialize calls for the same volume name.

The remote attach call always happens before the local mount, so a crash in between is
recovered by calling `attach` again. The remote detach call happens only after a successful unmount,
so the remote record never claims a detached volume that is still mounted.
"""

from .logging import logger
from .exceptions import StateInconsistencyError
from .utils import derive_local_path


WORLD_RWX = "777"


class VolumeAttachmentController:

    def __init__(self, remote, executor, probe, local_root):
        """
        Args:
            remote: storage API client (`attach`, `detach`, `get_volume`).
            executor: runs mkdir/chown/chmod/mount/umount (see `MountExecutor`).
            probe: answers whether a share is mounted at a path (see `MountStateProbe`).
            local_root: directory all volumes are mounted under.
        """
        self.remote = remote
        self.executor = executor
        self.probe = probe
        self.local_root = local_root

    def attach(self, name) -> str:
        share = self.remote.attach(name)
        mountpoint = derive_local_path(share, self.local_root)

        _, volume_config = self.remote.get_volume(name)

        if self.probe.is_mounted(share, mountpoint):
            logger.info(f"{share} is already mounted at {mountpoint}")
            return str(mountpoint)

        logger.info(f"Creating mountpoint {mountpoint} for {name}")
        self.executor.make_directory(mountpoint)

        self._apply_permissions(mountpoint, volume_config)

        self.executor.mount(share, mountpoint)
        logger.info(f"mounted: {share} at {mountpoint}")
        return str(mountpoint)

    def _apply_permissions(self, mountpoint, volume_config):
        if not volume_config.is_freshly_provisioned:
            # ownership of a pre-existing share is kept as is
            return
        if volume_config.has_ownership_hint:
            logger.info(f"Changing owner of {mountpoint} to {volume_config.owner}")
            self.executor.change_owner(mountpoint, volume_config.owner)
        else:
            logger.info(f"Changing mode of {mountpoint} to {WORLD_RWX}")
            self.executor.change_mode(mountpoint, WORLD_RWX)

    def detach(self, name):
        """
        Unmount the volume, then mark it detached on the storage API.
        A failed unmount leaves the remote record attached. The one exception is `umount` reporting
        the path as not mounted: the mount is already gone, so the remote detach still happens.
        """
        logger.info(f"Getting volume config of {name} for unmount")
        _, volume_config = self.remote.get_volume(name)
        if not volume_config.share_locator:
            raise StateInconsistencyError(
                name=name, reason=f"volume config has no {volume_config.SHARE_KEY!r}, cannot tell what to unmount"
            )
        mountpoint = derive_local_path(volume_config.share_locator, self.local_root)

        if self.executor.unmount(mountpoint):
            logger.info(f"unmounted: {mountpoint}")

        self.remote.detach(name)
        logger.info(f"{name} detached")
