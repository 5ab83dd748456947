from pathlib import Path
from unittest.mock import MagicMock, patch

from broadcaster_agent import main as agent_main
from event_broadcaster import FLEET, GAME_SERVER, WatchError


def test_invalid_broker_exits_with_error(tmp_path: Path):
    code = agent_main.main(["--config", str(tmp_path / "missing.yaml"), "--broker", "carrier-pigeon"])

    assert code == 1


def test_malformed_config_exits_with_error(tmp_path: Path):
    config_path = tmp_path / "broadcaster.yaml"
    config_path.write_text("broker: [unclosed\n")

    assert agent_main.main(["--config", str(config_path)]) == 1


def test_invalid_broker_timeout_exits_with_error(tmp_path: Path):
    config_path = tmp_path / "broadcaster.yaml"
    config_path.write_text(
        "broker:\n  type: kafka\n  options:\n    bootstrap_servers: kafka:9092\n    send_timeout: soon\n"
    )

    assert agent_main.main(["--config", str(config_path)]) == 1


def test_missing_pubsub_credentials_exits_with_error(tmp_path: Path):
    config_path = tmp_path / "broadcaster.yaml"
    config_path.write_text(
        "broker:\n  options:\n    project_id: games\n"
        f"    credentials_file: {tmp_path / 'missing-sa.json'}\n"
    )

    assert agent_main.main(["--config", str(config_path), "--broker", "pubsub"]) == 1


@patch("broadcaster_agent.main.signal.signal")
def test_manager_failure_exits_with_error(_signal, tmp_path: Path):
    with patch.object(
        agent_main.KubernetesWatchManager,
        "from_kubeconfig",
        side_effect=RuntimeError("no cluster"),
    ):
        code = agent_main.main(["--config", str(tmp_path / "missing.yaml")])

    assert code == 1


@patch("broadcaster_agent.main.signal.signal")
def test_runs_broadcaster_with_configured_watchers(_signal, tmp_path: Path):
    manager = MagicMock()
    with patch.object(
        agent_main.KubernetesWatchManager, "from_kubeconfig", return_value=manager
    ) as factory:
        code = agent_main.main(
            [
                "--config",
                str(tmp_path / "missing.yaml"),
                "--kubeconfig",
                "/etc/kube/config",
                "--sync-period",
                "30s",
                "--max-concurrency",
                "2",
            ]
        )

    assert code == 0
    factory.assert_called_once_with("/etc/kube/config", sync_period=30.0, max_concurrency=2)
    kinds = [call.args[0] for call in manager.add_watcher.call_args_list]
    assert kinds == [FLEET, GAME_SERVER]
    manager.start.assert_called_once()


@patch("broadcaster_agent.main.signal.signal")
def test_fatal_watch_error_exits_with_error(_signal, tmp_path: Path):
    manager = MagicMock()
    manager.start.side_effect = WatchError("forbidden")
    with patch.object(agent_main.KubernetesWatchManager, "from_kubeconfig", return_value=manager):
        code = agent_main.main(["--config", str(tmp_path / "missing.yaml")])

    assert code == 1
