import asyncaws
import trio


async def main():
    async with asyncaws.DynamoDbClient(endpoint="http://localhost:8000") as dynamodb:
        result = await dynamodb.put_item(
            TableName="Music",
            Item={"Artist": {"S": "No One You Know"}, "Year": {"N": "2020"}},
            ReturnValues="ALL_OLD",
        )
        print(result.Attributes)


trio.run(main)
