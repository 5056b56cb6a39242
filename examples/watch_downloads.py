"""Queue a download on a local aria2 daemon and follow it until it finishes.

Start the daemon first:

    aria2c --enable-rpc --rpc-secret=s3cr3t
"""

import asyncio
import logging
import sys

from aria2ws import ClientConfig, WebSocketClient
from aria2ws.router import ON_DOWNLOAD_COMPLETE, ON_DOWNLOAD_ERROR, ON_DOWNLOAD_START


async def main(uri: str) -> None:
    config = ClientConfig(secret="s3cr3t")

    async with WebSocketClient(config) as aria2:
        version = await aria2.get_version()
        print(f"Connected to aria2 {version['version']}")

        aria2.on(ON_DOWNLOAD_START, lambda event: print(f"Started {event['gid']}"))
        done = asyncio.ensure_future(
            asyncio.wait(
                [aria2.when(ON_DOWNLOAD_COMPLETE), aria2.when(ON_DOWNLOAD_ERROR)],
                return_when=asyncio.FIRST_COMPLETED,
            )
        )

        gid = await aria2.add_uri(uri)
        while not done.done():
            status = await aria2.tell_status(gid, ["status", "completedLength", "totalLength"])
            total = status["totalLength"] or 1
            print(f"{gid}: {status['status']} {100 * status['completedLength'] // total}%")
            await asyncio.wait([done], timeout=1)

        status = await aria2.tell_status(gid, ["status", "errorMessage"])
        print(f"{gid}: {status['status']} {status.get('errorMessage', '')}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "https://example.com/index.html"))
