import json

import pytest

from asyncaws import DynamoDbClient, InvalidArgument, ServiceError
from asyncaws.services.dynamodb import AttributeValue, PutItemInput

from .conftest import RecordingTransport, make_response


def dynamodb_client(*responses):
    transport = RecordingTransport(*responses)
    return DynamoDbClient(region="us-west-2", transport=transport, trust_env=False), transport


@pytest.mark.trio
async def test_put_item_request():
    request = PutItemInput(
        TableName="Music",
        Item={
            "Artist": {"S": "No One You Know"},
            "Year": {"N": "2020"},
            "Cover": {"B": b"\x89PNG"},
            "Tags": {"SS": ["indie", "rock"]},
            "Tracks": {"L": [{"S": "Intro"}, {"M": {"Length": {"N": "61"}}}]},
            "Live": {"BOOL": False},
        },
        ConditionExpression="attribute_not_exists(Artist)",
        ReturnValues="ALL_OLD",
        ReturnConsumedCapacity="TOTAL",
    ).request()

    assert request.method == "POST"
    assert request.target == "/"
    assert request.headers["content-type"] == "application/x-amz-json-1.0"
    assert request.headers["x-amz-target"] == "DynamoDB_20120810.PutItem"

    payload = json.loads(await request.body.next(65536))
    assert payload == {
        "TableName": "Music",
        "Item": {
            "Artist": {"S": "No One You Know"},
            "Year": {"N": "2020"},
            "Cover": {"B": "iVBORw=="},
            "Tags": {"SS": ["indie", "rock"]},
            "Tracks": {"L": [{"S": "Intro"}, {"M": {"Length": {"N": "61"}}}]},
            "Live": {"BOOL": False},
        },
        "ConditionExpression": "attribute_not_exists(Artist)",
        "ReturnValues": "ALL_OLD",
        "ReturnConsumedCapacity": "TOTAL",
    }


@pytest.mark.trio
async def test_put_item_expected():
    request = PutItemInput(
        TableName="Music",
        Expected={
            "Year": {"ComparisonOperator": "GT", "AttributeValueList": [{"N": "2000"}]}
        },
        ConditionalOperator="AND",
    ).request()

    payload = json.loads(await request.body.next(65536))
    assert payload["Expected"] == {
        "Year": {"ComparisonOperator": "GT", "AttributeValueList": [{"N": "2000"}]}
    }
    assert payload["ConditionalOperator"] == "AND"


def test_put_item_missing_table_name():
    with pytest.raises(InvalidArgument) as e:
        PutItemInput(Item={"Artist": {"S": "x"}}).request()
    assert str(e.value) == (
        'Missing parameter "TableName" for "PutItemInput". The value cannot be null.'
    )


def test_put_item_invalid_enum():
    with pytest.raises(InvalidArgument) as e:
        PutItemInput(TableName="Music", ReturnValues="EVERYTHING").request()
    assert '"ReturnValue"' in str(e.value)


def test_expected_invalid_comparison_operator():
    with pytest.raises(InvalidArgument):
        PutItemInput(
            TableName="Music", Expected={"Year": {"ComparisonOperator": "ALMOST"}}
        ).request()


def test_attribute_value_from_payload():
    value = AttributeValue.from_payload(
        {"M": {"Cover": {"B": "iVBORw=="}, "Plays": {"NS": ["1", "2"]}}}
    )
    assert value.M["Cover"].B == b"\x89PNG"
    assert value.M["Plays"].NS == ["1", "2"]
    assert value == AttributeValue(
        M={"Cover": AttributeValue(B=b"\x89PNG"), "Plays": {"NS": ["1", "2"]}}
    )


@pytest.mark.trio
async def test_put_item():
    client, transport = dynamodb_client(
        make_response(
            headers={"content-type": "application/x-amz-json-1.0"},
            data=json.dumps(
                {
                    "Attributes": {"Artist": {"S": "Old Artist"}},
                    "ConsumedCapacity": {"TableName": "Music", "CapacityUnits": 1.0},
                }
            ).encode(),
        )
    )

    output = await client.put_item(
        {"TableName": "Music", "Item": {"Artist": {"S": "New Artist"}}},
        ReturnValues="ALL_OLD",
    )

    assert output.Attributes == {"Artist": AttributeValue(S="Old Artist")}
    assert output.ConsumedCapacity.TableName == "Music"
    assert output.ConsumedCapacity.CapacityUnits == 1.0

    [sent] = transport.sent
    assert str(sent.request.url) == "https://dynamodb.us-west-2.amazonaws.com/"
    assert sent.content_length == len(sent.data)
    assert json.loads(sent.data)["ReturnValues"] == "ALL_OLD"


@pytest.mark.trio
async def test_put_item_empty_response():
    client, _ = dynamodb_client(make_response(data=b""))
    output = await client.put_item(TableName="Music")

    assert output.Attributes == {}
    assert output.ConsumedCapacity is None


@pytest.mark.trio
async def test_put_item_error():
    client, _ = dynamodb_client(
        make_response(
            400,
            headers={"x-amzn-requestid": "REQ123"},
            data=(
                b'{"__type":"com.amazonaws.dynamodb.v20120810#'
                b'ConditionalCheckFailedException",'
                b'"message":"The conditional request failed"}'
            ),
        )
    )

    with pytest.raises(ServiceError) as e:
        await client.put_item(TableName="Music", Item={"Artist": {"S": "x"}})

    assert e.value.code == "ConditionalCheckFailedException"
    assert e.value.message == "The conditional request failed"
    assert e.value.status_code == 400
    assert e.value.request_id == "REQ123"


@pytest.mark.trio
async def test_put_item_error_without_json():
    client, _ = dynamodb_client(make_response(500, data=b"Internal Server Error"))

    with pytest.raises(ServiceError) as e:
        await client.put_item(TableName="Music")

    assert e.value.code == "Http500"
    assert e.value.message == "Internal Server Error"
