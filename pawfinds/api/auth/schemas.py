# pawfinds/api/auth/schemas.py
from marshmallow import Schema, fields, validate


class AdminLoginSchema(Schema):
    """관리자 로그인 요청의 유효성을 검사하는 스키마"""
    username = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))
