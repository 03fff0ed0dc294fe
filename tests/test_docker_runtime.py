"""Docker Compose runtime with the docker CLI replaced by canned output."""

import json

import pytest

from release_guard.runtime import DockerComposeRuntime, HealthState, RuntimeOperationError


@pytest.fixture
def compose_file(tmp_path):
    path = tmp_path / "docker-compose.yml"
    path.write_text("services:\n  api:\n    image: api:${TAG}\n")
    return path


@pytest.fixture
def docker(compose_file, monkeypatch):
    runtime = DockerComposeRuntime({"compose_file": str(compose_file), "project_name": "shop"})
    runtime.commands = []
    runtime.output = ""

    async def fake_run(cmd, env=None, unit=None):
        runtime.commands.append((cmd, env))
        return runtime.output

    monkeypatch.setattr(runtime, "_run", fake_run)
    return runtime


def ps_entry(service, state="running", health="", image=None):
    return {"Service": service, "State": state, "Health": health, "Image": image or f"{service}:41"}


class TestParsePs:

    def test_json_array(self):
        output = json.dumps([ps_entry("api"), ps_entry("web")])
        assert [e["Service"] for e in DockerComposeRuntime._parse_ps(output)] == ["api", "web"]

    def test_json_lines(self):
        output = "\n".join(json.dumps(ps_entry(s)) for s in ("api", "worker"))
        assert [e["Service"] for e in DockerComposeRuntime._parse_ps(output)] == ["api", "worker"]

    def test_empty(self):
        assert DockerComposeRuntime._parse_ps("  \n") == []


class TestDockerComposeRuntime:

    def test_requires_compose_file(self):
        with pytest.raises(ValueError):
            DockerComposeRuntime({})

    @pytest.mark.asyncio
    async def test_list_units(self, docker):
        docker.output = json.dumps([ps_entry("api", image="api:41"), ps_entry("web", image="web:41")])

        units = await docker.list_units()

        assert [(u.name, u.image) for u in units] == [("api", "api:41"), ("web", "web:41")]
        assert docker.commands[0][0][:6] == ["docker", "compose", "-f", str(docker.compose_file), "-p", "shop"]

    @pytest.mark.asyncio
    async def test_garbled_ps_output(self, docker):
        docker.output = "{not json"

        with pytest.raises(RuntimeOperationError):
            await docker.list_units()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("entry, expected", [
        (ps_entry("api", health="healthy"), HealthState.HEALTHY),
        (ps_entry("api", health="unhealthy"), HealthState.UNHEALTHY),
        (ps_entry("api", health="starting"), HealthState.UNKNOWN),
        (ps_entry("api", state="exited"), HealthState.UNHEALTHY),
        (ps_entry("api"), HealthState.HEALTHY),
    ])
    async def test_inspect_health(self, docker, entry, expected):
        docker.output = json.dumps([entry])
        assert await docker.inspect_health("api") == expected

    @pytest.mark.asyncio
    async def test_running_without_healthcheck_can_be_unknown(self, compose_file, monkeypatch):
        runtime = DockerComposeRuntime({"compose_file": str(compose_file), "running_is_healthy": False})

        async def fake_run(cmd, env=None, unit=None):
            return json.dumps([ps_entry("api")])

        monkeypatch.setattr(runtime, "_run", fake_run)
        assert await runtime.inspect_health("api") == HealthState.UNKNOWN

    @pytest.mark.asyncio
    async def test_missing_unit_is_unknown(self, docker):
        docker.output = ""
        assert await docker.inspect_health("api") == HealthState.UNKNOWN

    @pytest.mark.asyncio
    async def test_start_passes_tag_and_never_pulls(self, docker, compose_file):
        await docker.start(compose_file.read_text(), "42")

        cmd, env = docker.commands[-1]
        assert cmd[-5:] == ["up", "--detach", "--no-build", "--pull", "never"]
        assert env == {"TAG": "42"}

    @pytest.mark.asyncio
    async def test_start_restores_descriptor(self, docker, compose_file):
        restored = "services:\n  api:\n    image: api:${TAG}\n  web:\n    image: web:${TAG}\n"

        await docker.start(restored, "41")

        assert compose_file.read_text() == restored

    @pytest.mark.asyncio
    async def test_descriptor_round_trip(self, docker, compose_file):
        await docker.write_descriptor("services: {}\n")

        assert await docker.read_descriptor() == "services: {}\n"

    @pytest.mark.asyncio
    async def test_pull_uses_plain_docker(self, docker):
        await docker.pull("registry.test/api:42")

        assert docker.commands[0][0] == ["docker", "pull", "registry.test/api:42"]
