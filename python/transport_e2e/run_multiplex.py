# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import argparse
import json
import logging
import sys
import uuid
from pygments import highlight
from pygments.lexers import JsonLexer
from pygments.formatters import TerminalFormatter
from . import azure_monitor
from .device_identity_helper import DeviceFixtureManager
from .device_session import IoTHubDeviceSession
from .e2e_constants import Transports
from .e2e_settings import get_settings
from .harness import HarnessConfig, ParallelHarness, WorkItem

logger = logging.getLogger("e2e.{}".format(__name__))


def make_parser():
    parser = argparse.ArgumentParser(
        prog="run-multiplex",
        description="Send messages from several temporary devices at once and verify every send",
    )
    parser.add_argument("--devices", type=int, default=3, help="number of devices to create")
    parser.add_argument(
        "--messages", type=int, default=5, help="number of messages each device sends"
    )
    parser.add_argument(
        "--keys", type=int, default=10, help="number of key/value properties on each message"
    )
    parser.add_argument(
        "--transport", choices=Transports.CHOICES, default=Transports.MQTT, help="transport to use"
    )
    parser.add_argument(
        "--send-timeout", type=float, default=90, help="seconds to wait for each send"
    )
    parser.add_argument(
        "--open-retry-timeout",
        type=float,
        default=3 * 60,
        help="seconds to keep retrying a session open",
    )
    parser.add_argument(
        "--sequential", action="store_true", help="run the devices one after another"
    )
    parser.add_argument("--verbose", action="store_true", help="log at DEBUG level")
    return parser


def make_config(args):
    config = HarnessConfig()
    config.messages_per_session = args.messages
    config.keys_per_message = args.keys
    config.send_timeout_in_seconds = args.send_timeout
    config.open_retry_timeout_in_seconds = args.open_retry_timeout
    return config


def main(argv=None):
    args = make_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    logging.getLogger("paho").setLevel(level=logging.WARNING)
    logging.getLogger("azure.iot").setLevel(level=logging.WARNING)

    settings = get_settings()
    run_id = str(uuid.uuid4())
    azure_monitor.add_logging_properties(
        run_id=run_id, hub=settings.iothub_name, transport=args.transport
    )
    azure_monitor.log_to_azure_monitor("e2e", settings.app_insights_connection_string)
    event_logger = azure_monitor.get_event_logger(settings.app_insights_connection_string)

    logger.info("Starting run {} against {}".format(run_id, settings.iothub_name))

    device_fixture_manager = DeviceFixtureManager(settings)
    try:
        devices = device_fixture_manager.create_devices(args.devices, "cli")
        work_items = [
            WorkItem(
                IoTHubDeviceSession(device.device_id, device.connection_string, args.transport)
            )
            for device in devices
        ]

        harness = ParallelHarness(make_config(args), event_logger=event_logger)
        if args.sequential:
            result = harness.run_sequentially(work_items)
        else:
            result = harness.run(work_items)
    finally:
        failed = device_fixture_manager.delete_all_devices()
        if failed:
            logger.error("Could not delete devices: {}".format(failed))

    json_str = json.dumps(result.to_dict(), indent=4, sort_keys=True)
    print(highlight(json_str, JsonLexer(), TerminalFormatter()))

    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
