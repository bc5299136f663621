import enum
import typing

from .exceptions import InvalidArgument
from .models import Request

InputT = typing.TypeVar("InputT", bound="Input")
EnumT = typing.TypeVar("EnumT", bound="ApiEnum")


class ApiEnum(str, enum.Enum):
    """String enumeration mirroring an AWS API enum shape."""

    @classmethod
    def exists(cls, value: typing.Any) -> bool:
        try:
            return isinstance(value, cls) or value in cls._value2member_map_
        except TypeError:
            return False

    def __str__(self) -> str:
        return str(self.value)


class Input:
    """Base for operation inputs. Each input knows how to turn its
    fields into a 'Request' for its API's protocol.
    """

    @classmethod
    def create(
        cls: typing.Type[InputT],
        input: typing.Union[InputT, typing.Mapping[str, typing.Any], None] = None,
        **kwargs: typing.Any,
    ) -> InputT:
        if isinstance(input, cls):
            if kwargs:
                raise TypeError(f"can't combine a '{cls.__name__}' with keyword fields")
            return input
        fields = dict(input or {})
        fields.update(kwargs)
        return cls(**fields)

    def request(self) -> Request:
        raise NotImplementedError()

    def required(self, name: str) -> typing.Any:
        value = getattr(self, name)
        if value is None:
            raise InvalidArgument(
                f'Missing parameter "{name}" for "{type(self).__name__}". '
                f"The value cannot be null."
            )
        return value

    def enum_value(self, name: str, enum_type: typing.Type[EnumT]) -> typing.Optional[str]:
        value = getattr(self, name)
        if value is None:
            return None
        return check_enum(self, name, value, enum_type)


def check_enum(
    owner: typing.Any, name: str, value: typing.Any, enum_type: typing.Type[ApiEnum]
) -> str:
    if not enum_type.exists(value):
        raise InvalidArgument(
            f'Invalid parameter "{name}" for "{type(owner).__name__}". '
            f'The value "{value}" is not a valid "{enum_type.__name__}".'
        )
    return str(enum_type(value))
