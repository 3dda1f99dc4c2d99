import json
from pprint import pformat
from typing import List, Tuple

import requests
from requests.exceptions import RequestException
from requests.utils import default_user_agent

from easypy.bunch import Bunch

from .logging import logger
from .exceptions import RemoteCallError, MalformedMetadataError, LookupFieldError
from .models import VolumeMetadata, VolumeConfig


def extract_error_detail(response) -> str:
    """Storage API reports failures as {"Err": "<reason>"}. Fall back to the raw body otherwise."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("Err"):
        return body["Err"]
    return (response.text or response.reason or "").strip()


class RESTSession(requests.Session):
    def __init__(self, config):
        super().__init__()
        self.config = config
        self.ssl_verify = config.ssl_verify
        self.headers["Accept"] = "application/json"
        self.headers["Content-Type"] = "application/json"
        self.headers["User-Agent"] = f"{config.plugin_name}/{config.plugin_version} {default_user_agent()}"

    def request(self, verb, api_method, *args, **kwargs):
        verb = verb.upper()
        api_method = api_method.strip("/")
        url = [self.base_url, api_method]
        url.extend(args)
        url = "/".join(str(p) for p in url)
        operation = f"[{verb}] {api_method}"
        logger.info(f">>> [{verb}] {url}")

        if kwargs.get("data") is not None:
            kwargs["data"] = json.dumps(kwargs["data"])
        else:
            kwargs.pop("data", None)

        if kwargs:
            for line in pformat(kwargs).splitlines():
                logger.info(f"    {line}")

        kwargs.setdefault("timeout", self.config.timeout)

        try:
            ret = super().request(verb, url, verify=self.ssl_verify, **kwargs)
        except RequestException as exc:
            raise RemoteCallError(operation=operation, status_code=None, detail=str(exc)) from exc

        if not ret.ok:
            raise RemoteCallError(operation=operation, status_code=ret.status_code, detail=extract_error_detail(ret))

        logger.info(f"<<< [{verb}] {url}")
        if ret.content:
            try:
                body = ret.json()
            except ValueError:
                raise MalformedMetadataError(field="body", source=operation, reason=f"not JSON: {ret.text[:200]!r}")
            ret = Bunch.from_dict(body) if isinstance(body, dict) else body
            for line in pformat(ret).splitlines():
                logger.info(f"    {line}")
        else:
            ret = None
        logger.info(f"--- [{verb}] {url}: Done")
        return ret


class StorageApiSession(RESTSession):
    """
    Communication with the storage API.
    Volume lifecycle (create/remove/get/list) and remote attachment bookkeeping (attach/detach).
    """

    def __init__(self, config, storage_api_url, backend_name, client_config):
        super().__init__(config)
        self.storage_api_url = storage_api_url
        self.backend_name = backend_name
        self.client_config = client_config
        self.base_url = f"{storage_api_url.rstrip('/')}/{backend_name}"
        self._activated = False

    @classmethod
    def create(cls, config, storage_api_url=None, backend_name=None, client_config=None):
        """
        Create instance of session.
        Arguments that are not provided are taken from configuration.
        """
        storage_api_url = storage_api_url or config.storage_api_url
        backend_name = backend_name or config.backend_name
        client_config = client_config or config.client_config
        if not storage_api_url:
            raise LookupFieldError(field="storage_api_url", tip="Set X_NFS_STORAGE_API_URL.")
        if not backend_name:
            raise LookupFieldError(field="backend_name", tip="Set X_NFS_BACKEND.")
        if not client_config:
            raise LookupFieldError(field="client_config", tip="Set X_NFS_CLIENT_CONFIG.")
        session = cls(config, storage_api_url, backend_name, client_config)
        ssl_verification = "enabled" if session.ssl_verify else "disabled"
        logger.info(f"Storage API session has been instantiated for {session.base_url}. SSL verification {ssl_verification}.")
        return session

    @property
    def is_activated(self) -> bool:
        return self._activated

    def activate(self):
        """Activate the backend on the storage API. Repeated calls are no-ops once activation succeeded."""
        if self._activated:
            logger.debug(f"{self.backend_name} is already activated")
            return
        self.post("activate")
        self._activated = True
        logger.info(f"{self.backend_name} activated")

    # ----------------------------
    # Volumes
    def create_volume(self, name: str, opts: dict = None):
        opts = dict(opts or {})
        opts["nfsClientConfig"] = self.client_config
        self.post("volumes", data=dict(name=name, opts=opts))

    def remove_volume(self, name: str, force_delete: bool = False):
        self.delete(f"volumes/{name}", data=dict(name=name, forceDelete=force_delete))

    def get_volume(self, name: str) -> Tuple[VolumeMetadata, VolumeConfig]:
        ret = self.get(f"volumes/{name}")
        if not isinstance(ret, dict) or "volume" not in ret:
            raise MalformedMetadataError(field="volume", source=f"get volume {name!r}", reason="missing in response")
        config = ret.get("config")
        if isinstance(config, Bunch):
            # extras are dumped as plain data, nested Bunch objects are not
            config = config.to_dict()
        return VolumeMetadata.from_response(ret.volume), VolumeConfig.from_response(config)

    def list_volumes(self) -> List[VolumeMetadata]:
        ret = self.get("volumes")
        volumes = ret.get("volumes") if isinstance(ret, dict) else None
        if volumes is None:
            return []
        if not isinstance(volumes, list):
            raise MalformedMetadataError(field="volumes", source="list volumes", reason=f"expected list, got {volumes!r}")
        return [VolumeMetadata.from_response(v) for v in volumes]

    # ----------------------------
    # Attachment bookkeeping
    def attach(self, name: str) -> str:
        """Mark volume as attached to this client and return the NFS share to mount."""
        ret = self.put(f"volumes/{name}/attach")
        share = ret.get("mountpoint") if isinstance(ret, dict) else None
        if not share or not isinstance(share, str):
            raise MalformedMetadataError(
                field="mountpoint", source=f"attach volume {name!r}", reason=f"expected NFS share, got {share!r}"
            )
        return share

    def detach(self, name: str):
        """Mark volume as detached from this client."""
        self.put(f"volumes/{name}/detach")
