import uuid

from retrade.application.session import (
    SessionData,
    encode_session,
    decode_session,
    create_access_token,
    decode_access_token,
    redirect_path_for,
)
from retrade.domain.models import UserType

def _session(role=UserType.buyer):
    return SessionData(user_id=uuid.uuid4(), email="a@mail.lk", name="A", role=role)

def test_cookie_value_roundtrip():
    data = _session(UserType.seller)
    decoded = decode_session(encode_session(data))
    assert decoded == data
    assert decoded.has_role(UserType.seller)
    assert not decoded.has_role(UserType.buyer)

def test_malformed_cookie_values_are_anonymous():
    assert decode_session(None) is None
    assert decode_session("") is None
    assert decode_session("not json") is None
    assert decode_session("%5B1%2C2%5D") is None  # a JSON list
    assert decode_session('{"userId": "x"}') is None
    assert decode_session('{"userId": "not-a-uuid", "email": "a", "name": "b", "role": "buyer"}') is None
    assert decode_session(
        f'{{"userId": "{uuid.uuid4()}", "email": "a", "name": "b", "role": "admin"}}'
    ) is None

def test_access_token_carries_claims():
    data = _session()
    assert decode_access_token(create_access_token(data)) == data
    assert decode_access_token("garbage") is None

def test_redirect_path_for_roles():
    assert redirect_path_for(UserType.buyer) == "/buyer/"
    assert redirect_path_for(UserType.seller) == "/seller/"
