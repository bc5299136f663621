import os
import sys

import asyncaws
import trio


# Point these at a local S3 compatible server, e.g. 'minio server /data'.
# Without an 'auth=' hook requests aren't signed.
s3 = asyncaws.S3Client(endpoint="http://localhost:9000")


async def main(path):
    await upload_file(path)
    await upload_generated()
    await s3.aclose()


async def upload_file(path):
    # Uploaded with PutObject or in parts depending on the size of the file.
    async with await trio.open_file(path, "rb") as fp:
        result = await s3.upload("demo", os.path.basename(path), fp)
    print(result.ETag)


async def upload_generated():
    async def lines():
        for i in range(100000):
            yield f"line {i}\n"

    # No length is known up front, so the first part is read before
    # choosing between PutObject and a multipart upload.
    result = await s3.upload("demo", "lines.txt", lines(), ContentType="text/plain")
    print(result.ETag)


trio.run(main, sys.argv[1] if len(sys.argv) > 1 else __file__)
