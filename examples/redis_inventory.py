"""Sharing a map between processes through Redis.

Run it twice at the same time to see the compare-and-set loop at work:

    python examples/redis_inventory.py & python examples/redis_inventory.py
"""

import logging
import os

from redis import Redis

from remotehash import Client
from remotehash.stores import RedisStore

logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

if __name__ == "__main__":
    store = RedisStore(Redis(host="localhost", port=6379), prefix="example:")

    with Client(store) as client:
        counters = client.get_map("counters")
        counters.put_if_absent("hits", 0)

        for _ in range(1000):
            while True:
                hits = counters["hits"]
                if counters.replace_if_same("hits", hits, hits + 1):
                    break

        print(f"[pid {os.getpid()}] hits = {counters['hits']}")
