import posixpath

from plumbum import local

from .models import ShareLocator
from .exceptions import MalformedMetadataError


def normalize_mount_options(mount_options: str):
    """Convert comma separated mount options to a list, dropping blanks and duplicates but keeping order."""
    s = mount_options.strip()
    return list(dict.fromkeys(p.strip() for p in s.split(",") if p.strip()))


def derive_local_path(share_locator: str, root):
    """
    Compute the local mount path of an NFS share.
    The host part of `share_locator` is discarded and the remote path is placed under `root`,
    eg: ("server1:/export/vol1", "/mnt") -> "/mnt/export/vol1"
    No I/O is performed, so the same locator always yields the same path.
    """
    locator = ShareLocator.parse(share_locator)
    # normpath of an absolute path never climbs above '/', so the result stays under root
    relative = posixpath.normpath(locator.remote_path).lstrip("/")
    if not relative:
        raise MalformedMetadataError(
            field="share_locator", source="share", reason=f"{share_locator!r} resolves to the mount root itself",
        )
    return local.path(root)[relative]
