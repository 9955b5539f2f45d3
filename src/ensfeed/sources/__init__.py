from ensfeed.sources.event_source import ContractEventSource, PollingSubscription, decode_logs

__all__ = ["ContractEventSource", "PollingSubscription", "decode_logs"]
