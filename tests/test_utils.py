import pytest
from nfs_driver.utils import derive_local_path, normalize_mount_options
from nfs_driver.exceptions import MalformedMetadataError


@pytest.mark.parametrize(
    "share, root, expected",
    [
        ("server1:/export/vol1", "/mnt", "/mnt/export/vol1"),
        ("server1:/export/vol1/", "/mnt", "/mnt/export/vol1"),
        ("10.0.0.5:/gpfs/fs1/vol-2", "/mnt", "/mnt/gpfs/fs1/vol-2"),
        ("server1://export//vol1", "/mnt/", "/mnt/export/vol1"),
        ("server2:/export/vol1", "/var/lib/nfs-volumes", "/var/lib/nfs-volumes/export/vol1"),
        ("server1:/export/../../etc", "/mnt", "/mnt/etc"),
    ]
)
def test_derive_local_path(share, root, expected):
    """Host is discarded and the remote path is placed under the root"""
    assert str(derive_local_path(share, root)) == expected


def test_derive_local_path_is_deterministic():
    share = "server1:/export/vol1"
    assert str(derive_local_path(share, "/mnt")) == str(derive_local_path(share, "/mnt"))


@pytest.mark.parametrize("share", [
    "",
    "server1",
    "/export/vol1",
    "server1:export/vol1",
    "server1:/",
    "server1:/..",
    ":/export/vol1",
    "fe80::1:/export",
    None,
])
def test_derive_local_path_malformed(share):
    with pytest.raises(MalformedMetadataError):
        derive_local_path(share, "/mnt")


@pytest.mark.parametrize("raw_mount_options", [
    "vers=3 ,  nolock,   proto=tcp",
    "vers=3,nolock,proto=tcp",
    ",vers=3,,nolock,proto=tcp,",
    "vers=3,nolock,vers=3,proto=tcp",
])
def test_normalize_mount_options(raw_mount_options):
    assert normalize_mount_options(raw_mount_options) == ["vers=3", "nolock", "proto=tcp"]


def test_normalize_empty_mount_options():
    assert normalize_mount_options("  ") == []
