"""
Print the Miracle window tree and some compositor state.

Usage:
    python examples/print_tree.py [--watch] [--config miracle.yaml]

With --watch, keeps running and prints workspace events until Ctrl+C.
"""

import argparse
import logging

import miracle
from miracle import MiracleConfig, MiracleProtocol, SubscriptionType, WorkspaceEvent, run_with_keyboard_interrupt


def parse_args():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--watch", action="store_true", help="stream workspace events after printing")
    parser.add_argument("--config", help="YAML config file (default: MIRACLESOCK)")
    parser.add_argument("--verbose", action="store_true", help="log wire traffic")
    return parser.parse_args()


async def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = MiracleConfig.from_yaml(args.config) if args.config else MiracleConfig.from_env()

    async with MiracleProtocol(config=config) as ipc:
        print("=== Window Tree ===\n")
        tree = await ipc.get_tree()
        print(tree)

        focused = [node.name for node in tree.walk() if getattr(node, "focused", False)]
        print(f"Focused: {', '.join(n or '?' for n in focused) or 'nothing'}")

        print(await ipc.get_version())
        print(f"Binding modes: {await ipc.get_binding_modes()}")
        print(await ipc.get_binding_state())
        print(await ipc.send_tick())

        if not args.watch:
            return

        subscription = ipc.subscribe_events()
        result = await ipc.subscribe([SubscriptionType.WORKSPACE])
        if not result.success:
            print(f"Failed to subscribe: {result.error}")
            return
        print("\nWatching workspace events. Press Ctrl+C to stop.")
        async with subscription:
            while True:
                try:
                    event = await anext(subscription)
                except StopAsyncIteration:
                    print("Connection closed")
                    break
                except miracle.MiracleDecodeError as e:
                    print(f"Undecodable event: {e}")
                    continue
                if isinstance(event, WorkspaceEvent):
                    old = event.old.name if event.old else None
                    print(f"Workspace {event.change.value}: {old} -> {event.current.name}")


if __name__ == "__main__":
    run_with_keyboard_interrupt(main)
