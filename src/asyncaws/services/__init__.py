from .dynamodb import DynamoDbClient
from .s3 import S3Client

__all__ = ["DynamoDbClient", "S3Client"]
