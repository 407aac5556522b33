"""
notify — Multi-channel notification dispatch.

Sub-modules:
    models      — Message, overrides, retry policy, dispatch mode
    base        — Notifier contract + retrying channel base
    retry       — bounded retry-under-deadline envelope
    channels/   — concrete channels (Bark / Barker push, SMTP email)
    dispatcher  — MultiNotifier fan-out (sequential / parallel)
    factory     — build channels and a dispatcher from Settings
"""
