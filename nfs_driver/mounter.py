from plumbum import local, ProcessExecutionError, ProcessTimedOut, CommandNotFound
from plumbum.commands.processes import ProcessLineTimedOut

from .logging import logger
from .exceptions import LocalCommandError


class MountExecutor:
    """
    Runs the privileged commands that change local mount state.
    Every failure (non-zero exit, timeout, missing binary) is raised as `LocalCommandError`
    with the captured output of the command.
    """

    def __init__(self, use_sudo=True, timeout=None, mount_options=()):
        self.use_sudo = use_sudo
        self.timeout = timeout
        self.mount_options = list(mount_options)

    @classmethod
    def from_config(cls, config):
        return cls(use_sudo=config.use_sudo, timeout=config.command_timeout, mount_options=config.mount_options)

    def _command(self, program, *args):
        argv = (program,) + tuple(str(a) for a in args)
        if self.use_sudo:
            return local["sudo"][argv]
        return local[argv[0]][argv[1:]]

    def _run(self, program, executable):
        executable & logger.pipe_info(f"{program} >>", timeout=self.timeout)

    def _execute(self, program, *args):
        try:
            executable = self._command(program, *args)
        except CommandNotFound as exc:
            raise LocalCommandError(command=" ".join((program,) + tuple(map(str, args))), output=f"command not found: {exc}")
        try:
            self._run(program, executable)
        except ProcessTimedOut:
            raise LocalCommandError(command=str(executable), output=f"timed out after {self.timeout} seconds")
        except ProcessLineTimedOut:
            raise LocalCommandError(command=str(executable), output="timed out waiting for output")
        except ProcessExecutionError as exc:
            output = (exc.stderr or exc.stdout or "").strip()
            raise LocalCommandError(command=str(executable), output=output, retcode=exc.retcode)

    def make_directory(self, path):
        self._execute("mkdir", "-p", path)

    def change_owner(self, path, owner: str):
        self._execute("chown", owner, path)

    def change_mode(self, path, mode: str):
        self._execute("chmod", mode, path)

    def mount(self, share, path):
        args = ["-t", "nfs"]
        if self.mount_options:
            args += ["-o", ",".join(self.mount_options)]
        self._execute("mount", *args, share, path)

    def unmount(self, path) -> bool:
        """Return False if `path` was not mounted in the first place."""
        try:
            self._execute("umount", path)
        except LocalCommandError as exc:
            if "not mounted" in (exc.output or ""):
                logger.info(f"umount failed - {path} is not mounted")
                return False
            raise
        return True


class MountStateProbe:
    """Read-only view of the live mount table."""

    def find_mounts(self, local_path):
        import psutil
        local_path = str(local_path)
        return [m for m in psutil.disk_partitions(all=True) if m.mountpoint == local_path]

    def is_mounted(self, share, local_path) -> bool:
        try:
            mounts = self.find_mounts(local_path)
        except (OSError, RuntimeError) as exc:
            # the already-mounted check is an optimization, treat as not mounted
            logger.warning(f"Cannot inspect mount table for {local_path}: {exc}")
            return False
        return any(m.device == str(share) for m in mounts)
