from easypy.exceptions import TException


class NfsDriverException(TException):
    template = "NFS driver failure"


class RemoteCallError(NfsDriverException):
    template = "Remote call {operation} failed (status {status_code}): {detail}"


class MalformedMetadataError(NfsDriverException):
    template = "Malformed {field!r} in {source}: {reason}"


class StateInconsistencyError(NfsDriverException):
    template = "Volume {name!r} is in an inconsistent state: {reason}"


class LocalCommandError(NfsDriverException):
    template = "Command `{command}` failed: {output}"


class LookupFieldError(NfsDriverException):
    template = "Missing required field {field!r}"
