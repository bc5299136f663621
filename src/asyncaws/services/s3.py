"""Amazon S3 (REST-XML protocol).

Only the operations needed to upload objects are covered: 'PutObject' and
the multipart upload family. 'S3Client.upload()' picks between the two.
"""

import logging
import typing
from xml.etree import ElementTree as ET

import trio

from asyncaws.body import (
    BodySource,
    BodyType,
    create_body_source,
    resolve_length,
)
from asyncaws.client import AwsClient
from asyncaws.exceptions import InvalidArgument, ServiceError
from asyncaws.input import ApiEnum, Input
from asyncaws.models import PARAM_NO_VALUE, URL, Request, Response
from asyncaws.utils import uri_encode

logger = logging.getLogger(__name__)

S3_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"

MIN_PART_SIZE = 5 * 1024 * 1024
DEFAULT_PART_SIZE = 8 * 1024 * 1024
MAX_PARTS = 10000
ABORT_TIMEOUT = 30.0


class ObjectCannedACL(ApiEnum):
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    AWS_EXEC_READ = "aws-exec-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"


class StorageClass(ApiEnum):
    STANDARD = "STANDARD"
    REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"
    STANDARD_IA = "STANDARD_IA"
    ONEZONE_IA = "ONEZONE_IA"
    INTELLIGENT_TIERING = "INTELLIGENT_TIERING"
    GLACIER = "GLACIER"
    DEEP_ARCHIVE = "DEEP_ARCHIVE"
    GLACIER_IR = "GLACIER_IR"


class RequestPayer(ApiEnum):
    REQUESTER = "requester"


class CompletedPart:
    def __init__(
        self,
        *,
        ETag: typing.Optional[str] = None,
        PartNumber: typing.Optional[int] = None,
    ):
        self.ETag = ETag
        self.PartNumber = PartNumber

    @classmethod
    def create(cls, input: typing.Any) -> "CompletedPart":
        return input if isinstance(input, cls) else cls(**input)

    def request_body(self, node: ET.Element) -> None:
        if self.ETag is not None:
            ET.SubElement(node, "ETag").text = self.ETag
        if self.PartNumber is not None:
            ET.SubElement(node, "PartNumber").text = str(self.PartNumber)


class CompletedMultipartUpload:
    def __init__(self, *, Parts: typing.Sequence[typing.Any] = ()):
        self.Parts = [CompletedPart.create(x) for x in Parts]

    @classmethod
    def create(cls, input: typing.Any) -> "CompletedMultipartUpload":
        return input if isinstance(input, cls) else cls(**input)

    def request_body(self, node: ET.Element) -> None:
        for part in self.Parts:
            part.request_body(ET.SubElement(node, "Part"))


def _object_path(bucket: str, key: str) -> str:
    return f"/{uri_encode(bucket)}/{uri_encode(key, safe='/')}"


class _ObjectInput(Input):
    """Fields and headers shared by the inputs that address one object"""

    def __init__(
        self,
        *,
        Bucket: typing.Optional[str] = None,
        Key: typing.Optional[str] = None,
        RequestPayer: typing.Optional[str] = None,
    ):
        self.Bucket = Bucket
        self.Key = Key
        self.RequestPayer = RequestPayer

    def headers(self) -> typing.Dict[str, str]:
        headers = {}
        request_payer = self.enum_value("RequestPayer", RequestPayer)
        if request_payer is not None:
            headers["x-amz-request-payer"] = request_payer
        return headers

    def object_url(self, **params: typing.Any) -> URL:
        path = _object_path(self.required("Bucket"), self.required("Key"))
        return URL(path=path, params=params)


class _NewObjectInput(_ObjectInput):
    def __init__(
        self,
        *,
        ContentType: typing.Optional[str] = None,
        ACL: typing.Optional[str] = None,
        StorageClass: typing.Optional[str] = None,
        Metadata: typing.Optional[typing.Mapping[str, str]] = None,
        **kwargs: typing.Any,
    ):
        super().__init__(**kwargs)
        self.ContentType = ContentType
        self.ACL = ACL
        self.StorageClass = StorageClass
        self.Metadata = dict(Metadata or {})

    def headers(self) -> typing.Dict[str, str]:
        headers = super().headers()
        if self.ContentType is not None:
            headers["content-type"] = self.ContentType
        acl = self.enum_value("ACL", ObjectCannedACL)
        if acl is not None:
            headers["x-amz-acl"] = acl
        storage_class = self.enum_value("StorageClass", StorageClass)
        if storage_class is not None:
            headers["x-amz-storage-class"] = storage_class
        for name, value in self.Metadata.items():
            headers[f"x-amz-meta-{name}"] = value
        return headers


class PutObjectRequest(_NewObjectInput):
    def __init__(
        self,
        *,
        Body: BodyType = None,
        ContentLength: typing.Any = None,
        ContentMD5: typing.Optional[str] = None,
        **kwargs: typing.Any,
    ):
        super().__init__(**kwargs)
        self.Body = Body
        self.ContentLength = ContentLength
        self.ContentMD5 = ContentMD5

    def request(self) -> Request:
        headers = self.headers()
        if self.ContentMD5 is not None:
            headers["content-md5"] = self.ContentMD5
        return Request(
            "PUT",
            self.object_url(),
            headers=headers,
            body=create_body_source(self.Body),
            content_length=self.ContentLength,
        )


class CreateMultipartUploadRequest(_NewObjectInput):
    def request(self) -> Request:
        return Request(
            "POST", self.object_url(uploads=PARAM_NO_VALUE), headers=self.headers()
        )


class UploadPartRequest(_ObjectInput):
    def __init__(
        self,
        *,
        PartNumber: typing.Optional[int] = None,
        UploadId: typing.Optional[str] = None,
        Body: BodyType = None,
        ContentLength: typing.Any = None,
        ContentMD5: typing.Optional[str] = None,
        **kwargs: typing.Any,
    ):
        super().__init__(**kwargs)
        self.PartNumber = PartNumber
        self.UploadId = UploadId
        self.Body = Body
        self.ContentLength = ContentLength
        self.ContentMD5 = ContentMD5

    def request(self) -> Request:
        headers = self.headers()
        if self.ContentMD5 is not None:
            headers["content-md5"] = self.ContentMD5
        part_number = self.required("PartNumber")
        if not 1 <= int(part_number) <= MAX_PARTS:
            raise InvalidArgument(
                f'Invalid parameter "PartNumber" for "{type(self).__name__}". '
                f"The value must be between 1 and {MAX_PARTS}."
            )
        url = self.object_url(
            partNumber=str(part_number), uploadId=self.required("UploadId")
        )
        return Request(
            "PUT",
            url,
            headers=headers,
            body=create_body_source(self.Body),
            content_length=self.ContentLength,
        )


class CompleteMultipartUploadRequest(_ObjectInput):
    def __init__(
        self,
        *,
        UploadId: typing.Optional[str] = None,
        MultipartUpload: typing.Any = None,
        **kwargs: typing.Any,
    ):
        super().__init__(**kwargs)
        self.UploadId = UploadId
        self.MultipartUpload = (
            CompletedMultipartUpload.create(MultipartUpload)
            if MultipartUpload is not None
            else None
        )

    def request(self) -> Request:
        headers = self.headers()
        headers["content-type"] = "application/xml"
        url = self.object_url(uploadId=self.required("UploadId"))
        return Request("POST", url, headers=headers, body=self.request_body())

    def request_body(self) -> BodySource:
        if self.MultipartUpload is None:
            return create_body_source(b"")
        root = ET.Element("CompleteMultipartUpload", xmlns=S3_NAMESPACE)
        self.MultipartUpload.request_body(root)
        return create_body_source(
            ET.tostring(root, encoding="utf-8", xml_declaration=True)
        )


class AbortMultipartUploadRequest(_ObjectInput):
    def __init__(self, *, UploadId: typing.Optional[str] = None, **kwargs: typing.Any):
        super().__init__(**kwargs)
        self.UploadId = UploadId

    def request(self) -> Request:
        url = self.object_url(uploadId=self.required("UploadId"))
        return Request("DELETE", url, headers=self.headers())


def _xml_fields(data: bytes) -> typing.Dict[str, typing.Optional[str]]:
    """Flattens the direct children of an XML document's root element
    into a dictionary, dropping namespaces from the tag names.
    """
    root = ET.fromstring(data)
    return {child.tag.split("}")[-1]: child.text for child in root}


class Result:
    def __init__(self, response: Response):
        self.response = response

    @property
    def request_id(self) -> typing.Optional[str]:
        return self.response.headers.get("x-amz-request-id")


class PutObjectOutput(Result):
    def __init__(self, response: Response):
        super().__init__(response)
        self.ETag = response.headers.get("etag")
        self.VersionId = response.headers.get("x-amz-version-id")


class UploadPartOutput(Result):
    def __init__(self, response: Response):
        super().__init__(response)
        self.ETag = response.headers.get("etag")


class CreateMultipartUploadOutput(Result):
    def __init__(self, response: Response):
        super().__init__(response)
        fields = _xml_fields(response.data)
        self.Bucket = fields.get("Bucket")
        self.Key = fields.get("Key")
        self.UploadId = fields.get("UploadId")


class CompleteMultipartUploadOutput(Result):
    def __init__(self, response: Response):
        super().__init__(response)
        fields = _xml_fields(response.data)
        self.Location = fields.get("Location")
        self.Bucket = fields.get("Bucket")
        self.Key = fields.get("Key")
        self.ETag = fields.get("ETag")
        self.VersionId = response.headers.get("x-amz-version-id")


class AbortMultipartUploadOutput(Result):
    pass


class S3Client(AwsClient):
    service = "s3"

    async def put_object(self, input=None, **kwargs: typing.Any) -> PutObjectOutput:
        input = PutObjectRequest.create(input, **kwargs)
        return PutObjectOutput(await self.send(input))

    async def create_multipart_upload(
        self, input=None, **kwargs: typing.Any
    ) -> CreateMultipartUploadOutput:
        input = CreateMultipartUploadRequest.create(input, **kwargs)
        return CreateMultipartUploadOutput(await self.send(input))

    async def upload_part(self, input=None, **kwargs: typing.Any) -> UploadPartOutput:
        input = UploadPartRequest.create(input, **kwargs)
        return UploadPartOutput(await self.send(input))

    async def complete_multipart_upload(
        self, input=None, **kwargs: typing.Any
    ) -> CompleteMultipartUploadOutput:
        input = CompleteMultipartUploadRequest.create(input, **kwargs)
        return CompleteMultipartUploadOutput(await self.send(input))

    async def abort_multipart_upload(
        self, input=None, **kwargs: typing.Any
    ) -> AbortMultipartUploadOutput:
        input = AbortMultipartUploadRequest.create(input, **kwargs)
        return AbortMultipartUploadOutput(await self.send(input))

    async def upload(
        self,
        bucket: str,
        key: str,
        body: BodyType,
        *,
        content_length: typing.Any = None,
        part_size: int = DEFAULT_PART_SIZE,
        **kwargs: typing.Any,
    ) -> typing.Union[PutObjectOutput, CompleteMultipartUploadOutput]:
        """Uploads a body of any supported shape to 'bucket/key'.

        Bodies that fit into a single part are sent with 'PutObject'.
        Larger ones, or ones whose length can't be known up front, are sent
        as a multipart upload that reads 'part_size' bytes at a time from
        the body, so at most one part is held in memory. The multipart
        upload is aborted if any part fails or the upload is cancelled.
        Extra keyword arguments ('ContentType', 'ACL', 'Metadata', ...) are
        passed to 'PutObject' or 'CreateMultipartUpload'.

        A 'content_length' of at most 'part_size' is sent as the
        'Content-Length' of a single 'PutObject'. A larger one only selects
        the multipart path: parts are cut from what the body actually
        yields and the override isn't checked against their total.
        """
        if part_size < MIN_PART_SIZE:
            raise ValueError(f"part_size must be at least {MIN_PART_SIZE} bytes")

        source = create_body_source(body)
        try:
            length = await resolve_length(source, content_length)
        except BaseException:
            await source.release()
            raise
        if length is not None and length <= part_size:
            return await self.put_object(
                Bucket=bucket, Key=key, Body=source, ContentLength=length, **kwargs
            )

        try:
            if kwargs.get("ContentType") is None:
                kwargs["ContentType"] = await source.content_type()

            first_part = await _read_part(source, part_size)
            if length is None and len(first_part) < part_size:
                return await self.put_object(
                    Bucket=bucket, Key=key, Body=first_part, **kwargs
                )

            return await self._multipart_upload(
                bucket, key, source, first_part, part_size, **kwargs
            )
        finally:
            await source.release()

    async def _multipart_upload(
        self,
        bucket: str,
        key: str,
        source: BodySource,
        first_part: bytes,
        part_size: int,
        **kwargs: typing.Any,
    ) -> CompleteMultipartUploadOutput:
        created = await self.create_multipart_upload(
            Bucket=bucket, Key=key, **kwargs
        )
        upload_id = created.UploadId
        request_payer = kwargs.get("RequestPayer")
        logger.debug("started multipart upload %s for %s/%s", upload_id, bucket, key)

        parts: typing.List[CompletedPart] = []
        try:
            part = first_part
            part_number = 1
            while True:
                if part_number > MAX_PARTS:
                    raise InvalidArgument(
                        f"body needs more than {MAX_PARTS} parts of {part_size} bytes"
                    )
                uploaded = await self.upload_part(
                    Bucket=bucket,
                    Key=key,
                    PartNumber=part_number,
                    UploadId=upload_id,
                    Body=part,
                    RequestPayer=request_payer,
                )
                parts.append(CompletedPart(ETag=uploaded.ETag, PartNumber=part_number))
                if len(part) < part_size:
                    break
                part = await _read_part(source, part_size)
                if not part:
                    break
                part_number += 1

            return await self.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
                RequestPayer=request_payer,
            )
        except BaseException:
            logger.debug("aborting multipart upload %s", upload_id)
            # Also runs when the upload was cancelled.
            with trio.move_on_after(ABORT_TIMEOUT) as scope:
                scope.shield = True
                try:
                    await self.abort_multipart_upload(
                        Bucket=bucket,
                        Key=key,
                        UploadId=upload_id,
                        RequestPayer=request_payer,
                    )
                except Exception:
                    logger.warning(
                        "failed to abort multipart upload %s", upload_id, exc_info=True
                    )
            if scope.cancelled_caught:
                logger.warning("timed out aborting multipart upload %s", upload_id)
            raise

    def parse_error(self, response: Response) -> ServiceError:
        request_id = response.headers.get("x-amz-request-id")
        try:
            fields = _xml_fields(response.data)
        except ET.ParseError:
            fields = {}
        return ServiceError(
            fields.get("Message") or response.text() or "unknown error",
            code=fields.get("Code") or f"Http{response.status_code}",
            status_code=response.status_code,
            request_id=fields.get("RequestId") or request_id,
        )


async def _read_part(source: BodySource, part_size: int) -> bytes:
    """Reads until 'part_size' bytes were collected or the source ends."""
    part = bytearray()
    data = await source.next(part_size)
    while data:
        part += data
        if len(part) >= part_size:
            break
        data = await source.next(part_size - len(part))
    return bytes(part)
