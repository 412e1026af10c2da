"""Basic usage examples for remote hash maps."""

import threading

from remotehash import Client, MemoryStore, RetryLimitExceededError, RetryPolicy

client = Client(MemoryStore())


def reserve_widget(customer):
    """Take one widget from stock, or report that none are left."""
    inventory = client.get_map("inventory")
    while True:
        stock = inventory.get("widget", 0)
        if stock == 0:
            return False
        if inventory.replace_if_same("widget", stock, stock - 1):
            print(f"  → Reserved a widget for {customer} ({stock - 1} left)")
            return True


if __name__ == "__main__":
    inventory = client.get_map("inventory")

    print("=" * 60)
    print("Example 1: Compare-and-set")
    print("=" * 60)

    inventory["widget"] = 5
    print(f"Client A replaces 5 with 3: {inventory.replace_if_same('widget', 5, 3)}")
    print(f"Client B replaces 5 with 10: {inventory.replace_if_same('widget', 5, 10)}")
    print(f"Widget stock: {inventory['widget']}\n")

    print("=" * 60)
    print("Example 2: Many clients reserving the last widgets")
    print("=" * 60)

    threads = [
        threading.Thread(target=reserve_widget, args=(f"customer-{i}",))
        for i in range(6)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    print(f"Widget stock: {inventory['widget']}")
    print("Notice: exactly three reservations went through!\n")

    print("=" * 60)
    print("Example 3: put_if_absent as a lease")
    print("=" * 60)

    leases = client.get_map("leases")
    print(f"worker-1 claims job-1: previous = {leases.put_if_absent('job-1', 'worker-1')}")
    print(f"worker-2 claims job-1: previous = {leases.put_if_absent('job-1', 'worker-2')}")
    print(f"worker-1 releases: {leases.remove_if_same('job-1', 'worker-1')}\n")

    print("=" * 60)
    print("Example 4: Bounded retries")
    print("=" * 60)

    try:
        inventory.replace("widget", 10, retry=RetryPolicy(max_attempts=1, backoff=0.01))
        print(f"Widget stock: {inventory['widget']}")
    except RetryLimitExceededError as e:
        print(f"❌ Error: {e}")

    client.shutdown()
