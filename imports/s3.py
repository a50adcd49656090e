import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings


def get_s3_client():
    """
    SDK client for server-side staging and gallery writes.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def public_url(key: str) -> str:
    """
    Direct object URL against the PUBLIC endpoint. Gallery images are served
    from a public-read prefix, so this is what gets stored on artworks.
    """
    base = settings.S3_PUBLIC_ENDPOINT.rstrip("/")
    return f"{base}/{settings.S3_BUCKET}/{key}"


def put_object(key: str, data: bytes, content_type: str | None = None, metadata: dict | None = None):
    """
    Write bytes to the bucket. Re-putting the same key overwrites it, which is
    what makes re-processing a work unit safe.
    """
    s3 = get_s3_client()
    extra = {}
    if content_type:
        extra["ContentType"] = content_type
    if metadata:
        extra["Metadata"] = {k: str(v) for k, v in metadata.items()}
    s3.put_object(Bucket=settings.S3_BUCKET, Key=key, Body=data, **extra)


def get_object(key: str) -> bytes:
    s3 = get_s3_client()
    resp = s3.get_object(Bucket=settings.S3_BUCKET, Key=key)
    return resp["Body"].read()


def delete_object(key: str):
    """Delete a key; S3 treats deleting a missing key as success."""
    s3 = get_s3_client()
    s3.delete_object(Bucket=settings.S3_BUCKET, Key=key)
