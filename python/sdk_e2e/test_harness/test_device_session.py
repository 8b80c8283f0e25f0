# Copyright (c) Microsoft Corporation. All rights reserved.
# Licensed under the MIT License. See License.txt in the project root for
# license information.
import pytest
from azure.iot.device import Message
from azure.iot.device.exceptions import (
    ConnectionFailedError,
    CredentialError,
    OperationCancelled,
    ServiceError,
)
from transport_e2e.device_session import IoTHubDeviceSession, status_code_from_exception
from transport_e2e.e2e_constants import StatusCode, ConnectionStatus, Transports
from transport_e2e.errors import TransientOpenFailure

DEVICE_CONNECTION_STRING = "HostName=my-hub.azure-devices.net;DeviceId=dev;SharedAccessKey=abc="


@pytest.fixture
def mock_client_class(mocker):
    return mocker.patch("transport_e2e.device_session.IoTHubDeviceClient")


@pytest.fixture
def mock_client(mock_client_class):
    return mock_client_class.create_from_connection_string.return_value


@pytest.fixture
def session(mock_client_class):
    session = IoTHubDeviceSession("dev", DEVICE_CONNECTION_STRING)
    yield session
    session.close()


@pytest.mark.describe("IoTHubDeviceSession - open")
class TestDeviceSessionOpen(object):
    @pytest.mark.it("Creates a client from the connection string and connects it")
    def test_open(self, session, mock_client_class, mock_client):
        session.open()
        mock_client_class.create_from_connection_string.assert_called_once_with(
            DEVICE_CONNECTION_STRING
        )
        mock_client.connect.assert_called_once_with()

    @pytest.mark.it("Uses websockets for the mqttws transport")
    def test_websockets(self, mock_client_class):
        session = IoTHubDeviceSession(
            "dev", DEVICE_CONNECTION_STRING, Transports.MQTT_WS, keep_alive=30
        )
        session.open()
        session.close()
        mock_client_class.create_from_connection_string.assert_called_once_with(
            DEVICE_CONNECTION_STRING, keep_alive=30, websockets=True
        )

    @pytest.mark.it("Raises TransientOpenFailure when the connection fails")
    def test_transient_failure(self, session, mock_client):
        error = ConnectionFailedError("no network")
        mock_client.connect.side_effect = error
        with pytest.raises(TransientOpenFailure) as e_info:
            session.open()
        assert e_info.value.__cause__ is error

    @pytest.mark.it("Reuses the client when open is called again after a failure")
    def test_reuse_client(self, session, mock_client_class, mock_client):
        mock_client.connect.side_effect = [ConnectionFailedError("no network"), None]
        with pytest.raises(TransientOpenFailure):
            session.open()
        session.open()
        assert mock_client_class.create_from_connection_string.call_count == 1
        assert mock_client.connect.call_count == 2

    @pytest.mark.it("Lets credential errors through unchanged")
    def test_credential_error(self, session, mock_client):
        mock_client.connect.side_effect = CredentialError("bad key")
        with pytest.raises(CredentialError):
            session.open()

    @pytest.mark.it("Installs a message handler that was set before open")
    def test_message_handler(self, session, mock_client):
        def handler(message):
            pass

        session.set_message_received_handler(handler)
        session.open()
        assert mock_client.on_message_received is handler


@pytest.mark.describe("IoTHubDeviceSession - send_async")
class TestDeviceSessionSend(object):
    @pytest.mark.it("Completes with OK_EMPTY when send_message returns")
    def test_send_ok(self, session, mock_client, mocker):
        on_complete = mocker.MagicMock()
        message = Message("hello")
        session.open()
        session.send_async(message, on_complete).result()

        mock_client.send_message.assert_called_once_with(message)
        on_complete.assert_called_once_with(StatusCode.OK_EMPTY)

    @pytest.mark.it("Completes with a status code when send_message raises")
    @pytest.mark.parametrize(
        "error, status_code",
        [
            pytest.param(CredentialError(), StatusCode.UNAUTHORIZED, id="CredentialError"),
            pytest.param(
                OperationCancelled(), StatusCode.MESSAGE_CANCELLED_ONCLOSE, id="OperationCancelled"
            ),
            pytest.param(ServiceError(), StatusCode.INTERNAL_SERVER_ERROR, id="ServiceError"),
            pytest.param(ValueError(), StatusCode.REQUEST_ENTITY_TOO_LARGE, id="ValueError"),
            pytest.param(RuntimeError(), StatusCode.ERROR, id="RuntimeError"),
        ],
    )
    def test_send_error(self, session, mock_client, mocker, error, status_code):
        on_complete = mocker.MagicMock()
        mock_client.send_message.side_effect = error
        session.open()
        session.send_async(Message("hello"), on_complete).result()

        on_complete.assert_called_once_with(status_code)
        assert status_code_from_exception(error) == status_code


@pytest.mark.describe("IoTHubDeviceSession - connection state")
class TestDeviceSessionConnectionState(object):
    @pytest.mark.it("Records Connected and Disconnected updates")
    def test_updates(self, session, mock_client):
        session.open()
        handler = mock_client.on_connection_state_change

        mock_client.connected = True
        handler()
        mock_client.connected = False
        handler()

        assert session.connection_status_updates.get_list() == [
            ConnectionStatus.CONNECTED,
            ConnectionStatus.DISCONNECTED,
        ]

    @pytest.mark.it("Calls registered callbacks with the new status")
    def test_callbacks(self, session, mock_client, mocker):
        callback = mocker.MagicMock()
        session.register_connection_state_callback(callback)
        session.open()

        mock_client.connected = True
        mock_client.on_connection_state_change()
        callback.assert_called_once_with(ConnectionStatus.CONNECTED)


@pytest.mark.describe("IoTHubDeviceSession - close")
class TestDeviceSessionClose(object):
    @pytest.mark.it("Shuts the client down")
    def test_close(self, session, mock_client):
        session.open()
        session.close()
        mock_client.shutdown.assert_called_once_with()
        assert session.client is None

    @pytest.mark.it("Can be called more than once, or before open")
    def test_close_twice(self, session, mock_client):
        session.close()
        session.open()
        session.close()
        session.close()
        assert mock_client.shutdown.call_count == 1
