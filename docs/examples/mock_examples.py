from provisio.mock import mock


class Adult:
    def __init__(self, name: str = "Douglas"):
        self.name = name

    def print_name(self):
        print(self.name)


class Child:
    def __init__(self, parent: Adult):
        self.parent = parent

    def print_parent(self):
        self.parent.print_name()

    def get_free_car(self):
        self.parent.buy_car_for_child()


mocked = mock(Child)
mocked.parent.print_name.assert_not_called()
mocked.print_parent()
mocked.parent.print_name.assert_called_once()

spoiled = True
try:
    mocked.get_free_car()
except AttributeError:
    spoiled = False
assert not spoiled

from unittest.mock import Mock

# Any callable taking the parameter type can stand in for MagicMock(spec=...)
lenient = mock(Child, mocking_function=lambda cls: Mock())
lenient.get_free_car()
lenient.parent.buy_car_for_child.assert_called_once()
