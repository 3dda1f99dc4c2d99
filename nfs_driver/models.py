from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from easypy.humanize import yesno_to_bool

from .exceptions import MalformedMetadataError


class ShareLocator(NamedTuple):
    """NFS export identifier in `host:remote_path` form."""

    host: str
    remote_path: str

    @classmethod
    def parse(cls, locator) -> "ShareLocator":
        if not isinstance(locator, str) or locator.count(":") != 1:
            raise MalformedMetadataError(
                field="share_locator", source="share", reason=f"expected 'host:path', got {locator!r}"
            )
        host, _, remote_path = locator.partition(":")
        if not host:
            raise MalformedMetadataError(field="share_locator", source="share", reason=f"no host in {locator!r}")
        if not remote_path.startswith("/"):
            raise MalformedMetadataError(
                field="share_locator", source="share", reason=f"remote path of {locator!r} is not absolute"
            )
        return cls(host, remote_path)

    def __str__(self):
        return f"{self.host}:{self.remote_path}"


def _lookup(raw: dict, *keys):
    for key in keys:
        if key in raw:
            return raw[key]


@dataclass(frozen=True)
class VolumeMetadata:
    """Server side identity of a volume."""

    name: str
    id: Optional[str] = None
    mountpoint: Optional[str] = None

    @classmethod
    def from_response(cls, raw) -> "VolumeMetadata":
        if not isinstance(raw, dict):
            raise MalformedMetadataError(field="volume", source="storage API response", reason=f"not an object: {raw!r}")
        name = _lookup(raw, "Name", "name")
        if not isinstance(name, str) or not name:
            raise MalformedMetadataError(field="name", source="volume metadata", reason=f"got {name!r}")
        volume_id = _lookup(raw, "Id", "id", "ID")
        mountpoint = _lookup(raw, "Mountpoint", "mountpoint")
        if mountpoint is not None and not isinstance(mountpoint, str):
            raise MalformedMetadataError(
                field="mountpoint", source="volume metadata", reason=f"expected string, got {mountpoint!r}"
            )
        return cls(
            name=name,
            id=None if volume_id is None else str(volume_id),
            mountpoint=mountpoint or None,
        )


@dataclass(frozen=True)
class VolumeConfig:
    """
    Typed view of the configuration the storage API keeps for a volume.
    Only the fields used on attach/detach are lifted out of the raw mapping,
    everything else is kept as is in `extras`.
    """

    share_locator: Optional[str] = None
    is_preexisting: Optional[bool] = None
    uid: Optional[str] = None
    gid: Optional[str] = None
    extras: dict = field(default_factory=dict)

    SHARE_KEY = "nfs_share"
    PREEXISTING_KEY = "isPreexisting"

    @classmethod
    def from_response(cls, raw) -> "VolumeConfig":
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise MalformedMetadataError(field="config", source="storage API response", reason=f"not an object: {raw!r}")
        raw = dict(raw)

        share_locator = raw.pop(cls.SHARE_KEY, None)
        if share_locator is not None and not isinstance(share_locator, str):
            raise MalformedMetadataError(
                field=cls.SHARE_KEY, source="volume config", reason=f"expected string, got {share_locator!r}"
            )

        return cls(
            share_locator=share_locator or None,
            is_preexisting=cls._to_bool(cls.PREEXISTING_KEY, raw.pop(cls.PREEXISTING_KEY, None)),
            uid=cls._to_id("uid", raw.pop("uid", None)),
            gid=cls._to_id("gid", raw.pop("gid", None)),
            extras=raw,
        )

    @staticmethod
    def _to_bool(key, value) -> Optional[bool]:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return yesno_to_bool(value.strip().lower())
            except (KeyError, ValueError):
                pass
        raise MalformedMetadataError(field=key, source="volume config", reason=f"expected boolean, got {value!r}")

    @staticmethod
    def _to_id(key, value) -> Optional[str]:
        if value is None or value == "":
            return None
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise MalformedMetadataError(field=key, source="volume config", reason=f"expected id, got {value!r}")
        return str(value)

    @property
    def is_freshly_provisioned(self) -> bool:
        # an absent flag means pre-existing
        return self.is_preexisting is False

    @property
    def has_ownership_hint(self) -> bool:
        return self.uid is not None or self.gid is not None

    @property
    def owner(self) -> str:
        """`chown` owner argument. A missing half stays empty (`1000:` or `:1000`)."""
        return f"{self.uid or ''}:{self.gid or ''}"
