from call_handoff.api.webhooks import call

__all__ = ["call"]
