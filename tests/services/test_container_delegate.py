import io
import subprocess
import sys
from dataclasses import replace

import pytest

from deliveryjob.errors import ContainerIoFailed, ContainerSpawnFailed
from deliveryjob.models import RunOptions
from deliveryjob.services.container_delegate import BOOL_FLAGS, VALUE_FLAGS, ContainerDelegate, relay_output


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class RecordingSink:
    def __init__(self):
        self.events = []

    def write(self, data):
        self.events.append(("write", data))

    def flush(self):
        self.events.append(("flush",))


class FakeProcess:
    def __init__(self, stdout, returncode=0):
        self.stdout = stdout
        self.returncode = returncode
        self.killed = False

    def wait(self):
        return self.returncode

    def kill(self):
        self.killed = True


class FakeSubprocess:
    PIPE = subprocess.PIPE
    STDOUT = subprocess.STDOUT

    def __init__(self, process=None, error=None):
        self.process = process
        self.error = error
        self.calls = []

    def Popen(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.error:
            raise self.error
        return self.process


class BrokenStream(io.BytesIO):
    def readline(self, *_args):
        raise OSError("pipe closed")


def _delegate(subprocess_module=subprocess, output=None):
    return ContainerDelegate(
        logger=DummyLogger(),
        console=DummyConsole(),
        subprocess_module=subprocess_module,
        output=output if output is not None else io.BytesIO(),
    )


def _full_options():
    values = {attribute: f"{attribute}-value" for _flag, attribute in VALUE_FLAGS}
    values["config"] = "cli.yml"
    flags = {attribute: True for _flag, attribute in BOOL_FLAGS}
    return RunOptions(stage="verify", phases="lint unit", docker_image="ci-image", **values, **flags)


def test_build_command_mounts_cwd_and_runs_same_job():
    opts = RunOptions(stage="verify", phases="lint unit", docker_image="ci-image")

    cmd = _delegate().build_command(opts, "/work/api")

    assert cmd == [
        "docker", "run", "-t", "-i",
        "-v", "/work/api:/work/api",
        "-w", "/work/api",
        "--dns", "8.8.8.8",
        "ci-image",
        "delivery", "job", "verify", "lint unit",
    ]


def test_build_command_forwards_every_flag_in_order():
    opts = _full_options()

    cmd = _delegate().build_command(opts, "/work/api")

    expected = []
    for flag, attribute in VALUE_FLAGS:
        expected.extend([flag, getattr(opts, attribute)])
    expected.extend(flag for flag, _attribute in BOOL_FLAGS)
    assert cmd[15:] == expected


@pytest.mark.parametrize("flag, attribute", VALUE_FLAGS)
def test_value_flag_is_forwarded_with_its_value(flag, attribute):
    opts = replace(RunOptions(stage="verify", phases="unit", docker_image="ci-image"), **{attribute: "given"})

    cmd = _delegate().build_command(opts, "/work/api")

    assert cmd[15:] == [flag, "given"]


@pytest.mark.parametrize("flag, attribute", BOOL_FLAGS)
def test_bool_flag_is_forwarded_bare(flag, attribute):
    opts = replace(RunOptions(stage="verify", phases="unit", docker_image="ci-image"), **{attribute: True})

    cmd = _delegate().build_command(opts, "/work/api")

    assert cmd[15:] == [flag]


def test_empty_fields_forward_no_flags():
    opts = RunOptions(stage="verify", phases="unit", docker_image="ci-image")

    cmd = _delegate().build_command(opts, "/work/api")

    for flag, _attribute in VALUE_FLAGS + BOOL_FLAGS:
        assert flag not in cmd


def test_config_outside_cwd_gets_its_own_mount():
    opts = RunOptions(stage="verify", phases="unit", docker_image="ci-image", config="/etc/delivery/cli.yml")

    cmd = _delegate().build_command(opts, "/work/api")

    assert cmd[8:10] == ["-v", "/etc/delivery:/etc/delivery:ro"]
    assert cmd[-2:] == ["--config", "/etc/delivery/cli.yml"]


def test_config_inside_cwd_needs_no_extra_mount():
    opts = RunOptions(stage="verify", phases="unit", docker_image="ci-image", config=".delivery/cli.yml")

    cmd = _delegate().build_command(opts, "/work/api")

    assert cmd.count("-v") == 1


def test_relay_output_writes_and_flushes_whole_lines():
    sink = RecordingSink()

    relay_output(io.BytesIO(b"first\nsecond\ntail"), sink)

    assert sink.events == [
        ("write", b"first\n"),
        ("flush",),
        ("write", b"second\n"),
        ("flush",),
        ("write", b"tail"),
        ("flush",),
    ]


def test_run_relays_output_and_returns_child_status():
    fake = FakeSubprocess(process=FakeProcess(io.BytesIO(b"building\ndone\n"), returncode=3))
    output = io.BytesIO()
    delegate = _delegate(subprocess_module=fake, output=output)

    exit_code = delegate.run(RunOptions(stage="build", phases="unit", docker_image="ci-image"), "/work")

    assert exit_code == 3
    assert output.getvalue() == b"building\ndone\n"
    cmd, kwargs = fake.calls[0]
    assert cmd[0] == "docker"
    assert kwargs["stdout"] == subprocess.PIPE
    assert kwargs["stderr"] == subprocess.STDOUT


def test_stream_captures_stdout_and_stderr_of_real_process():
    output = io.BytesIO()
    delegate = _delegate(output=output)

    exit_code = delegate.stream(
        [
            sys.executable,
            "-c",
            "import sys; print('out', flush=True); sys.stderr.write('err\\n'); sys.exit(2)",
        ]
    )

    assert exit_code == 2
    assert b"out\n" in output.getvalue()
    assert b"err\n" in output.getvalue()


def test_spawn_failure_raises():
    fake = FakeSubprocess(error=FileNotFoundError("docker"))

    with pytest.raises(ContainerSpawnFailed, match="Failed to execute container"):
        _delegate(subprocess_module=fake).run(
            RunOptions(stage="build", phases="unit", docker_image="ci-image"), "/work"
        )


def test_missing_stdout_raises():
    fake = FakeSubprocess(process=FakeProcess(None))

    with pytest.raises(ContainerSpawnFailed, match="failed to execute container"):
        _delegate(subprocess_module=fake).stream(["docker", "run"])


def test_read_failure_raises_io_error():
    process = FakeProcess(BrokenStream())
    fake = FakeSubprocess(process=process)

    with pytest.raises(ContainerIoFailed):
        _delegate(subprocess_module=fake).stream(["docker", "run"])

    assert process.killed is True
