"""
File-access boundary for transaction data files.

Reads and writes text lines either on local disk or, when ``S3_BUCKET`` is
configured, as S3 objects keyed by the given path. I/O faults never
propagate: they are logged and the caller gets an empty / ``False`` result.
"""

from pathlib import Path
from typing import Iterable, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

import config
from logging_setup import get_logger

logger = get_logger("storage")

ENCODING = "utf-8"


def get_s3_client():
    return boto3.client("s3", region_name=config.AWS_REGION)


def _s3_key(path: str | Path) -> str:
    return Path(path).as_posix().lstrip("/")


def read_lines(path: str | Path) -> List[str]:
    """
    Returns the lines of a data file, or an empty list if it cannot be read.
    """
    if config.S3_BUCKET:
        s3 = get_s3_client()
        key = _s3_key(path)
        try:
            obj = s3.get_object(Bucket=config.S3_BUCKET, Key=key)
            return obj["Body"].read().decode(ENCODING).splitlines()
        except s3.exceptions.NoSuchKey:
            logger.error("S3 object not found: s3://%s/%s", config.S3_BUCKET, key)
            return []
        except (BotoCoreError, ClientError, UnicodeDecodeError) as e:
            logger.error("S3 download error for %s: %s", key, e)
            return []

    # Local fallback
    local_path = Path(path)
    try:
        return local_path.read_text(encoding=ENCODING).splitlines()
    except FileNotFoundError as e:
        logger.error("File not found: %s", e)
    except IsADirectoryError as e:
        logger.error("Path is a directory: %s", e)
    except PermissionError as e:
        logger.error("No permission to read file: %s", e)
    except UnicodeDecodeError as e:
        logger.error("File %s is not valid %s text: %s", local_path, ENCODING, e)
    except OSError as e:
        logger.error("I/O error reading %s: %s", local_path, e)
    return []


def write_lines(path: str | Path, lines: Iterable[str]) -> bool:
    """
    Overwrites a data file with the given lines. Returns ``True`` on success.
    """
    body = "".join(f"{line}\n" for line in lines)

    if config.S3_BUCKET:
        s3 = get_s3_client()
        key = _s3_key(path)
        try:
            s3.put_object(Bucket=config.S3_BUCKET, Key=key, Body=body.encode(ENCODING))
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload error for %s: %s", key, e)
            return False

    # Local fallback
    local_path = Path(path)
    try:
        local_path.write_text(body, encoding=ENCODING)
        return True
    except FileNotFoundError as e:
        logger.error("Directory for %s not found: %s", local_path, e)
    except PermissionError as e:
        logger.error("No permission to write file: %s", e)
    except OSError as e:
        logger.error("I/O error writing %s: %s", local_path, e)
    return False
