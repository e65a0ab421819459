import asyncio
import logging
import sys

from hilink import Credentials, HiLinkClient, JsonFileKeyStore, LoginEvent

logging.basicConfig(level=logging.DEBUG)

if len(sys.argv) < 4:
    print("%s <ip> <username> <password> [key store]" % sys.argv[0])
    sys.exit(1)


def print_event(event: LoginEvent) -> None:
    logging.info("%s: %s", event.host, event.state.name)


async def main(host, username, password, key_store_path=None):
    key_store = JsonFileKeyStore(key_store_path) if key_store_path else None
    async with HiLinkClient(
        host, credentials=Credentials(username, password), key_store=key_store
    ) as client:
        session = await client.login(listener=print_event)
    logging.info("Verification token: %s", session.token)
    logging.info("Device public exponent: %s", session.device_key.exponent)


asyncio.run(main(*sys.argv[1:5]))
