# Utils package
from .notify_sign import build_sign_string, sign_params, verify_signature
from .notify_data import (
    NotifyURLData,
    NotifyDataError,
    InvalidInput,
    MissingSignature,
    SignatureMismatch,
    MissingField,
    MalformedField,
    InconsistentFees,
    decode_notify_url_data,
)
from .pay_time import parse_time, format_time

__all__ = [
    'build_sign_string',
    'sign_params',
    'verify_signature',
    'NotifyURLData',
    'NotifyDataError',
    'InvalidInput',
    'MissingSignature',
    'SignatureMismatch',
    'MissingField',
    'MalformedField',
    'InconsistentFees',
    'decode_notify_url_data',
    'parse_time',
    'format_time',
]
