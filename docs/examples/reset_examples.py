import provisio


class RequestCache:
    """Scoped service that keeps data for the request being handled."""

    def __init__(self):
        self.entries = {}

    def reset(self):
        self.entries.clear()


class Handler:
    def __init__(self, cache: RequestCache):
        self.cache = cache

    def handle(self, request_id: int):
        self.cache.entries[request_id] = f"response {request_id}"
        return self.cache.entries[request_id]


registry = provisio.initialize()
container = provisio.ServiceContainer(registry)
container.add_scoped(RequestCache)
container.add_scoped(Handler)
provider = provisio.ServiceProvider(registry)

# A long-lived worker serves many requests with the same object graph
for request_id in range(3):
    handler = provider.get_service(Handler)
    assert handler.handle(request_id) == f"response {request_id}"
    assert len(handler.cache.entries) == 1

    # clear per-request state instead of rebuilding the registry
    container.reset_all()
    assert handler.cache.entries == {}

assert provider.get_service(Handler) is handler
