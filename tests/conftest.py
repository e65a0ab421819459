from __future__ import annotations

import os

import aiohttp
import pytest
from asyncclick.testing import CliRunner

from hilink import Credentials, DeviceConfig, HttpTransport, MemoryKeyStore

from .fakedevice import MOCK_PWD, MOCK_USER, MockHiLinkDevice

MOCK_HOST = "127.0.0.1"


@pytest.fixture
def mock_device(mocker):
    """Return a fake device answering every request made through aiohttp."""
    device = MockHiLinkDevice(MOCK_HOST)
    mocker.patch.object(aiohttp.ClientSession, "get", side_effect=device.get)
    mocker.patch.object(aiohttp.ClientSession, "post", side_effect=device.post)
    return device


@pytest.fixture
def device_config():
    return DeviceConfig(MOCK_HOST, credentials=Credentials(MOCK_USER, MOCK_PWD))


@pytest.fixture
async def transport(device_config):
    transport = HttpTransport(config=device_config)
    yield transport
    await transport.close()


@pytest.fixture
def key_store():
    return MemoryKeyStore()


@pytest.fixture
def runner():
    """Runner fixture that unsets the HILINK_ environment variables for tests."""
    hilink_vars = {k: None for k in os.environ if k.startswith("HILINK_")}
    return CliRunner(env=hilink_vars)
