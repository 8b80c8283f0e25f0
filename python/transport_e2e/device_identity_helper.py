# Copyright (c) Microsoft. All rights reserved.
# Licensed under the MIT license. See LICENSE file in the project root for
# full license information.
import uuid
import logging
from azure.iot.hub import IoTHubRegistryManager
from .e2e_constants import Const

logger = logging.getLogger("e2e.{}".format(__name__))


class DeviceIdentityDescription(object):
    def __init__(self):
        self.device_id = None
        self.primary_key = None
        self.connection_string = None


class DeviceFixtureManager(object):
    """
    Creates and destroys the ephemeral device identities used by a test run, and sends
    cloud-to-device messages to them.  Every device created here is remembered so that
    `delete_all_devices` can clean up, even if a test fails part way through.
    """

    def __init__(self, settings, registry_manager=None):
        self.settings = settings
        self.registry_manager = registry_manager or IoTHubRegistryManager.from_connection_string(
            settings.iothub_connection_string
        )
        self.devices = []

    def make_device_id(self, tag):
        return "{}{}-{}".format(Const.DEVICE_ID_PREFIX, tag, uuid.uuid4())

    def create_device(self, tag="send"):
        desc = DeviceIdentityDescription()
        desc.device_id = self.make_device_id(tag)

        dev = self.registry_manager.create_device_with_sas(desc.device_id, None, None, "enabled")

        desc.primary_key = dev.authentication.symmetric_key.primary_key
        desc.connection_string = self.get_device_connection_string(
            desc.device_id, desc.primary_key
        )
        self.devices.append(desc)

        logger.info("Created device with deviceId = {}".format(desc.device_id))
        return desc

    def create_devices(self, count, tag="send"):
        return [self.create_device("{}{}".format(tag, i)) for i in range(count)]

    def get_device_connection_string(self, device_id, primary_key):
        return "HostName={};DeviceId={};SharedAccessKey={}".format(
            self.settings.iothub_hostname, device_id, primary_key
        )

    def delete_device(self, device_id):
        logger.info("Deleting device with deviceId = {}".format(device_id))
        self.registry_manager.delete_device(device_id)
        self.devices = [x for x in self.devices if x.device_id != device_id]

    def delete_all_devices(self):
        """
        Delete every device we created.  Keeps going if a delete fails so one bad device
        doesn't leak the rest.  Returns the list of device ids that could not be deleted.
        """
        failed = []
        for desc in list(self.devices):
            try:
                self.delete_device(desc.device_id)
            except Exception as e:
                logger.error("Failed to delete device {}: {}".format(desc.device_id, repr(e)))
                failed.append(desc.device_id)
        return failed

    def send_c2d_message(self, device_id, message_text, properties):
        """
        Send a cloud-to-device message.  `properties` may contain system properties
        (`correlationId`, `messageId`, etc) as well as application properties.
        """
        logger.info("Sending c2d message to {} with {}".format(device_id, properties))
        self.registry_manager.send_c2d_message(device_id, message_text, properties)
