import sys
from pathlib import Path
from typing import Optional, Any, List
from unittest.mock import MagicMock

import pytest
from easypy.aliasing import aliases

ROOT = Path(__file__).resolve().parents[1]
# Extend python import path to get nfs_driver package from here
sys.path += [ROOT.as_posix()]

from nfs_driver.configuration import Config
from nfs_driver.controller import VolumeAttachmentController
from nfs_driver.exceptions import LocalCommandError
from nfs_driver.models import VolumeMetadata, VolumeConfig


# ----------------------------------------------------------------------------------------------------------------------
# Helper classes
# ----------------------------------------------------------------------------------------------------------------------


@aliases("mock", static=False)
class FakeMethod:
    """
    Method of a fake collaborator that enhances it with MagicMock
    capabilities eg: 'assert_called', 'call_args', 'assert_called_with' etc.
    Every call is also appended to the shared `journal` so tests can check ordering across collaborators.
    """

    def __init__(self, name: str, journal: List, return_value: Optional = None, side_effect: Optional = None):
        self.mock = MagicMock()
        self.name = name
        self.journal = journal
        self.return_value = return_value
        self.side_effect = side_effect

    def __call__(self, *args, **kwargs) -> Any:
        self.mock(*args, **kwargs)
        self.journal.append((self.name, tuple(str(a) for a in args)))
        if self.side_effect is not None:
            raise self.side_effect
        return self.return_value


class FakeRemote:
    """Simulate storage API session behavior"""

    def __init__(self, journal: List, share: Optional[str] = "server1:/export/vol1", config: Optional[dict] = None):
        """
        Args:
            share: NFS share returned by 'attach'. Use None to simulate a malformed attach response.
            config: raw volume config returned by 'get_volume'.
        """
        self.attach = FakeMethod("remote.attach", journal, return_value=share)
        self.get_volume = FakeMethod(
            "remote.get_volume", journal,
            return_value=(VolumeMetadata(name="vol1"), VolumeConfig.from_response(config or {})),
        )
        self.detach = FakeMethod("remote.detach", journal)


class FakeExecutor:
    """Record mount commands instead of running them"""

    def __init__(self, journal: List, fail_on: Optional[str] = None, output: str = "simulated failure"):
        """
        Args:
            fail_on: name of the method that raises LocalCommandError.
        """
        for name in ("make_directory", "change_owner", "change_mode", "mount", "unmount"):
            error = LocalCommandError(command=name, output=output) if name == fail_on else None
            return_value = True if name == "unmount" else None
            setattr(self, name, FakeMethod(f"executor.{name}", journal, return_value=return_value, side_effect=error))

    @property
    def local_changes(self):
        return [m for m in (self.make_directory, self.change_owner, self.change_mode, self.mount) if m.mock.called]


class FakeProbe:

    def __init__(self, journal: List, mounted: bool = False):
        self.is_mounted = FakeMethod("probe.is_mounted", journal, return_value=mounted)


# ----------------------------------------------------------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------------------------------------------------------


@pytest.fixture
def config():
    return Config(env=dict(
        X_NFS_STORAGE_API_URL="http://storage.local:9999/ubiquity_storage",
        X_NFS_BACKEND="nfs-backend",
        X_NFS_CLIENT_CONFIG="10.0.0.0/24(rw,no_root_squash)",
        X_NFS_LOCAL_MOUNT_ROOT="/mnt",
        X_NFS_USE_SUDO="no",
    ))


@pytest.fixture
def journal():
    return []


@pytest.fixture
def attachment(journal):
    """
    Factory for VolumeAttachmentController wired to fake collaborators.
    Returns the controller followed by its fake remote, executor and probe.
    """

    def __wrapped(share="server1:/export/vol1", volume_config=None, mounted=False, fail_on=None):
        remote = FakeRemote(journal, share=share, config=volume_config)
        executor = FakeExecutor(journal, fail_on=fail_on)
        probe = FakeProbe(journal, mounted=mounted)
        controller = VolumeAttachmentController(remote=remote, executor=executor, probe=probe, local_root="/mnt")
        return controller, remote, executor, probe

    return __wrapped
