"""
Tests for the command line entry point.
"""

import os
from unittest.mock import patch

import pytest

import memory_daemon
from lifecycle.liveness_marker import LivenessMarker
from runtime.runtime_info import RuntimeInfo


def test_stop_without_marker_reports_not_running(tmp_path, capsys):
    with patch.object(LivenessMarker, "send_signal") as send:
        exit_code = memory_daemon.main(["stop", "--data-dir", str(tmp_path / "data")])

    assert exit_code == 0
    assert "not running" in capsys.readouterr().out
    send.assert_not_called()


def test_status_without_marker(tmp_path, capsys):
    exit_code = memory_daemon.main(["status", "--data-dir", str(tmp_path / "data")])

    assert exit_code == 0
    assert "Memory daemon is not running" in capsys.readouterr().out


def test_status_with_marker_but_no_snapshot(tmp_path, capsys):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "memory-daemon.pid").write_text(str(os.getpid()), encoding="utf-8")

    exit_code = memory_daemon.main(["status", "--data-dir", str(data_dir)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert f"running (PID: {os.getpid()})" in out
    assert "Uptime:" in out


@pytest.mark.skipif(not RuntimeInfo.has_flock(), reason="needs fcntl.flock")
def test_start_exits_1_when_another_instance_runs(tmp_path):
    data_dir = tmp_path / "data"
    holder = LivenessMarker(data_dir / "memory-daemon.pid", data_dir / "memory-daemon.lock")
    holder.acquire()
    try:
        exit_code = memory_daemon.main(["start", "--data-dir", str(data_dir)])
    finally:
        holder.release()

    assert exit_code == 1


def test_start_exits_1_when_data_dir_unusable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    assert memory_daemon.main(["start", "--data-dir", str(blocker / "data")]) == 1


def test_restart_stops_then_starts(tmp_path):
    calls = []
    config_file = tmp_path / "daemon.yaml"
    config_file.write_text("restart_delay: 0\n", encoding="utf-8")

    with patch.object(memory_daemon, "cmd_start", side_effect=lambda config: calls.append("start") or 0):
        exit_code = memory_daemon.main(
            ["restart", "--config", str(config_file), "--data-dir", str(tmp_path / "data")]
        )

    assert exit_code == 0
    assert calls == ["start"]


def test_default_command_is_start():
    args = memory_daemon.build_parser().parse_args([])

    assert args.command == "start"
    assert args.config is None


def test_unknown_command_rejected():
    with pytest.raises(SystemExit):
        memory_daemon.build_parser().parse_args(["explode"])


def test_build_services_wires_four_periodic_tasks(config):
    services = memory_daemon.build_services(config)

    assert services.scheduler.task_names == ["backup", "state_save", "health_check", "session_detect"]
    assert services.memory_service.scheduler is services.scheduler
    assert services.marker.pid_path == config.pid_path
