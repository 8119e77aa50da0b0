from actionsboard.broadcast.channel import BroadcastChannel, Subscription

__all__ = ["BroadcastChannel", "Subscription"]
