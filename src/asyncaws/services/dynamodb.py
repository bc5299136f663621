"""Amazon DynamoDB (JSON 1.0 protocol)."""

import base64
import json
import typing

from asyncaws.body import create_body_source
from asyncaws.client import AwsClient
from asyncaws.exceptions import ServiceError
from asyncaws.input import ApiEnum, Input, check_enum
from asyncaws.models import URL, Request, Response

TARGET_PREFIX = "DynamoDB_20120810"


class ReturnValue(ApiEnum):
    NONE = "NONE"
    ALL_OLD = "ALL_OLD"
    UPDATED_OLD = "UPDATED_OLD"
    ALL_NEW = "ALL_NEW"
    UPDATED_NEW = "UPDATED_NEW"


class ReturnConsumedCapacity(ApiEnum):
    INDEXES = "INDEXES"
    TOTAL = "TOTAL"
    NONE = "NONE"


class ReturnItemCollectionMetrics(ApiEnum):
    SIZE = "SIZE"
    NONE = "NONE"


class ConditionalOperator(ApiEnum):
    AND = "AND"
    OR = "OR"


class ComparisonOperator(ApiEnum):
    EQ = "EQ"
    NE = "NE"
    IN = "IN"
    LE = "LE"
    LT = "LT"
    GE = "GE"
    GT = "GT"
    BETWEEN = "BETWEEN"
    NOT_NULL = "NOT_NULL"
    NULL = "NULL"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    BEGINS_WITH = "BEGINS_WITH"


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


class AttributeValue:
    """A DynamoDB attribute. Exactly one of the type fields is expected
    to be set, e.g. 'AttributeValue(S="hello")' or
    'AttributeValue.create({"N": "42"})'.
    """

    def __init__(
        self,
        *,
        S: typing.Optional[str] = None,
        N: typing.Optional[str] = None,
        B: typing.Optional[bytes] = None,
        SS: typing.Optional[typing.Sequence[str]] = None,
        NS: typing.Optional[typing.Sequence[str]] = None,
        BS: typing.Optional[typing.Sequence[bytes]] = None,
        M: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        L: typing.Optional[typing.Sequence[typing.Any]] = None,
        NULL: typing.Optional[bool] = None,
        BOOL: typing.Optional[bool] = None,
    ):
        self.S = S
        self.N = N
        self.B = B
        self.SS = list(SS) if SS is not None else None
        self.NS = list(NS) if NS is not None else None
        self.BS = list(BS) if BS is not None else None
        self.M = (
            {k: AttributeValue.create(v) for k, v in M.items()}
            if M is not None
            else None
        )
        self.L = [AttributeValue.create(v) for v in L] if L is not None else None
        self.NULL = NULL
        self.BOOL = BOOL

    @classmethod
    def create(cls, input: typing.Any) -> "AttributeValue":
        return input if isinstance(input, cls) else cls(**input)

    @classmethod
    def from_payload(cls, payload: typing.Mapping[str, typing.Any]) -> "AttributeValue":
        return cls(
            S=payload.get("S"),
            N=payload.get("N"),
            B=base64.b64decode(payload["B"]) if "B" in payload else None,
            SS=payload.get("SS"),
            NS=payload.get("NS"),
            BS=[base64.b64decode(x) for x in payload["BS"]] if "BS" in payload else None,
            M={k: cls.from_payload(v) for k, v in payload["M"].items()}
            if "M" in payload
            else None,
            L=[cls.from_payload(v) for v in payload["L"]] if "L" in payload else None,
            NULL=payload.get("NULL"),
            BOOL=payload.get("BOOL"),
        )

    def request_body(self) -> typing.Dict[str, typing.Any]:
        payload: typing.Dict[str, typing.Any] = {}
        if self.S is not None:
            payload["S"] = self.S
        if self.N is not None:
            payload["N"] = self.N
        if self.B is not None:
            payload["B"] = _b64encode(self.B)
        if self.SS is not None:
            payload["SS"] = list(self.SS)
        if self.NS is not None:
            payload["NS"] = list(self.NS)
        if self.BS is not None:
            payload["BS"] = [_b64encode(x) for x in self.BS]
        if self.M is not None:
            payload["M"] = {k: v.request_body() for k, v in self.M.items()}
        if self.L is not None:
            payload["L"] = [v.request_body() for v in self.L]
        if self.NULL is not None:
            payload["NULL"] = self.NULL
        if self.BOOL is not None:
            payload["BOOL"] = self.BOOL
        return payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeValue):
            return NotImplemented
        return self.request_body() == other.request_body()

    def __repr__(self) -> str:
        return f"<AttributeValue {self.request_body()!r}>"


class ExpectedAttributeValue:
    def __init__(
        self,
        *,
        Value: typing.Any = None,
        Exists: typing.Optional[bool] = None,
        ComparisonOperator: typing.Optional[str] = None,
        AttributeValueList: typing.Sequence[typing.Any] = (),
    ):
        self.Value = AttributeValue.create(Value) if Value is not None else None
        self.Exists = Exists
        self.ComparisonOperator = ComparisonOperator
        self.AttributeValueList = [AttributeValue.create(x) for x in AttributeValueList]

    @classmethod
    def create(cls, input: typing.Any) -> "ExpectedAttributeValue":
        return input if isinstance(input, cls) else cls(**input)

    def request_body(self) -> typing.Dict[str, typing.Any]:
        payload: typing.Dict[str, typing.Any] = {}
        if self.Value is not None:
            payload["Value"] = self.Value.request_body()
        if self.Exists is not None:
            payload["Exists"] = self.Exists
        if self.ComparisonOperator is not None:
            payload["ComparisonOperator"] = check_enum(
                self, "ComparisonOperator", self.ComparisonOperator, ComparisonOperator
            )
        if self.AttributeValueList:
            payload["AttributeValueList"] = [
                x.request_body() for x in self.AttributeValueList
            ]
        return payload


class PutItemInput(Input):
    def __init__(
        self,
        *,
        TableName: typing.Optional[str] = None,
        Item: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        Expected: typing.Optional[typing.Mapping[str, typing.Any]] = None,
        ReturnValues: typing.Optional[str] = None,
        ReturnConsumedCapacity: typing.Optional[str] = None,
        ReturnItemCollectionMetrics: typing.Optional[str] = None,
        ConditionalOperator: typing.Optional[str] = None,
        ConditionExpression: typing.Optional[str] = None,
        ExpressionAttributeNames: typing.Optional[typing.Mapping[str, str]] = None,
        ExpressionAttributeValues: typing.Optional[
            typing.Mapping[str, typing.Any]
        ] = None,
    ):
        self.TableName = TableName
        self.Item = {k: AttributeValue.create(v) for k, v in (Item or {}).items()}
        self.Expected = {
            k: ExpectedAttributeValue.create(v) for k, v in (Expected or {}).items()
        }
        self.ReturnValues = ReturnValues
        self.ReturnConsumedCapacity = ReturnConsumedCapacity
        self.ReturnItemCollectionMetrics = ReturnItemCollectionMetrics
        self.ConditionalOperator = ConditionalOperator
        self.ConditionExpression = ConditionExpression
        self.ExpressionAttributeNames = dict(ExpressionAttributeNames or {})
        self.ExpressionAttributeValues = {
            k: AttributeValue.create(v)
            for k, v in (ExpressionAttributeValues or {}).items()
        }

    def request(self) -> Request:
        headers = {
            "content-type": "application/x-amz-json-1.0",
            "x-amz-target": f"{TARGET_PREFIX}.PutItem",
        }
        payload = self.request_body()
        body = json.dumps(payload) if payload else "{}"
        return Request(
            "POST", URL(path="/"), headers=headers, body=create_body_source(body)
        )

    def request_body(self) -> typing.Dict[str, typing.Any]:
        payload: typing.Dict[str, typing.Any] = {"TableName": self.required("TableName")}
        if self.Item:
            payload["Item"] = {k: v.request_body() for k, v in self.Item.items()}
        if self.Expected:
            payload["Expected"] = {k: v.request_body() for k, v in self.Expected.items()}

        for name, enum_type in (
            ("ReturnValues", ReturnValue),
            ("ReturnConsumedCapacity", ReturnConsumedCapacity),
            ("ReturnItemCollectionMetrics", ReturnItemCollectionMetrics),
            ("ConditionalOperator", ConditionalOperator),
        ):
            value = self.enum_value(name, enum_type)
            if value is not None:
                payload[name] = value

        if self.ConditionExpression is not None:
            payload["ConditionExpression"] = self.ConditionExpression
        if self.ExpressionAttributeNames:
            payload["ExpressionAttributeNames"] = dict(self.ExpressionAttributeNames)
        if self.ExpressionAttributeValues:
            payload["ExpressionAttributeValues"] = {
                k: v.request_body() for k, v in self.ExpressionAttributeValues.items()
            }
        return payload


class ConsumedCapacity:
    def __init__(self, payload: typing.Mapping[str, typing.Any]):
        self.TableName: typing.Optional[str] = payload.get("TableName")
        self.CapacityUnits: typing.Optional[float] = payload.get("CapacityUnits")
        self.ReadCapacityUnits: typing.Optional[float] = payload.get(
            "ReadCapacityUnits"
        )
        self.WriteCapacityUnits: typing.Optional[float] = payload.get(
            "WriteCapacityUnits"
        )


class PutItemOutput:
    def __init__(self, response: Response):
        self.response = response
        payload = response.json()
        self.Attributes = {
            k: AttributeValue.from_payload(v)
            for k, v in payload.get("Attributes", {}).items()
        }
        self.ConsumedCapacity = (
            ConsumedCapacity(payload["ConsumedCapacity"])
            if "ConsumedCapacity" in payload
            else None
        )


class DynamoDbClient(AwsClient):
    service = "dynamodb"

    async def put_item(self, input=None, **kwargs: typing.Any) -> PutItemOutput:
        input = PutItemInput.create(input, **kwargs)
        return PutItemOutput(await self.send(input))

    def parse_error(self, response: Response) -> ServiceError:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        code = payload.get("__type", "") or f"Http{response.status_code}"
        return ServiceError(
            payload.get("message")
            or payload.get("Message")
            or response.text()
            or "unknown error",
            code=code.rsplit("#", 1)[-1],
            status_code=response.status_code,
            request_id=response.headers.get("x-amzn-requestid"),
        )
