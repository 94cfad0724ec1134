import argparse

import pytest

from haptic_hands.config import GatewayConfig
from haptic_hands.main import build_parser, config_from_args, parse_object


class TestGatewayConfig:
    def test_defaults(self):
        config = GatewayConfig.from_env({})

        assert config.host == "0.0.0.0"
        assert config.port == 7777
        assert config.feedback_port == 7777
        assert config.pinch_threshold == 200.0
        assert config.grab_radius == 0.3
        assert config.status_port is None
        assert config.log_level == "INFO"
        assert config.ground_x == (-5.25, 5.05)
        assert config.ground_z == (-4.8, 5.08)

    def test_overrides(self):
        config = GatewayConfig.from_env({
            "UDP_HOST": "127.0.0.1",
            "UDP_PORT": "9000",
            "FEEDBACK_PORT": "9001",
            "PINCH_THRESHOLD": "150",
            "PHYSICS_RATE": "100",
            "STATUS_PORT": "8080",
            "LOG_LEVEL": "debug",
        })

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.feedback_port == 9001
        assert config.pinch_threshold == 150.0
        assert config.physics_rate == 100.0
        assert config.status_port == 8080
        assert config.log_level == "DEBUG"

    def test_bad_number_raises(self):
        with pytest.raises(ValueError):
            GatewayConfig.from_env({"UDP_PORT": "seven"})


class TestCommandLine:
    def test_parse_object(self):
        assert parse_object("Cube:0,1.5,-5") == ("Cube", (0.0, 1.5, -5.0))

    @pytest.mark.parametrize("value", ["Cube", "Cube:1,2", ":1,2,3", "Cube:a,b,c"])
    def test_parse_object_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_object(value)

    def test_args_override_config(self):
        args = build_parser().parse_args([
            "--port", "9000",
            "--log-level", "debug",
            "--object", "Ball:1,2,3",
            "--object", "Cube:0,1.5,-5",
        ])
        config = config_from_args(args, base=GatewayConfig())

        assert config.port == 9000
        assert config.log_level == "DEBUG"
        assert config.host == "0.0.0.0"
        assert args.objects == [("Ball", (1.0, 2.0, 3.0)), ("Cube", (0.0, 1.5, -5.0))]
        assert not args.send_test
