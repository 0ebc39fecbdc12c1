# Add imports
import provisio

# Initialize a Registry, with constructor arguments for classes that need them
registry = provisio.initialize(
    {"by_class": {"DependencyOne": {"message_start": "I was initialized"}}}
)
container = provisio.ServiceContainer(registry)


# Declare the dependency hierarchy through constructor type hints.
class DependencyOne:
    def __init__(self, message_start: str, message_end: str = "with dependency injection"):
        self.message_start = message_start
        self.message_end = message_end


class DependencyTwo:
    def __init__(self, greeting: str = "Bonjour"):
        self.greeting = greeting


class MessageBuilder:
    def __init__(self, dep1: DependencyOne, dep2: DependencyTwo):
        self.dep1 = dep1
        self.dep2 = dep2

    def get_message(self):
        return f"{self.dep2.greeting}! {self.dep1.message_start} {self.dep1.message_end}."


# Register every service once, at process start
container.add_scoped(DependencyOne)
container.add_scoped(DependencyTwo)
container.add_ephemeral(MessageBuilder)

# Build a class through the provider
provider = provisio.ServiceProvider(registry)
message_builder = provider.get_service(MessageBuilder)

# Use the class
message = message_builder.get_message()
print(message)

assert message == "Bonjour! I was initialized with dependency injection."
# You should see this string as the output of your script

# Scoped dependencies are shared, ephemeral services are rebuilt
assert provider.get_service(MessageBuilder) is not message_builder
assert provider.get_service(MessageBuilder).dep1 is message_builder.dep1
