import pytest

from stakestream.claims import Claim, Claims, ClaimsResponse
from stakestream.cosmos import DAY, HOUR, Expiration, mock_env


@pytest.fixture
def env():
    return mock_env()


def test_new_address_has_no_claims():
    assert Claims().query_claims("bob").claims == ()


def test_create_claim_is_listed(env):
    claims = Claims()
    release = (DAY * 3).after(env.block)
    claims.create_claim("bob", 540, release)
    assert claims.query_claims("bob") == ClaimsResponse(
        claims=(Claim(amount=540, release_at=release),)
    )


def test_claims_kept_in_creation_order(env):
    claims = Claims()
    first = DAY.after(env.block)
    second = HOUR.after(env.block)
    claims.create_claim("bob", 10, first)
    claims.create_claim("bob", 20, second)
    amounts = [c.amount for c in claims.query_claims("bob").claims]
    assert amounts == [10, 20]


def test_immature_claim_not_paid(env):
    claims = Claims()
    claims.create_claim("bob", 540, (DAY * 3).after(env.block))
    assert claims.claim_tokens("bob", env.plus_seconds(DAY.value).block, None) == 0
    assert len(claims.query_claims("bob").claims) == 1


def test_mature_claim_paid_and_removed(env):
    claims = Claims()
    claims.create_claim("bob", 540, (DAY * 3).after(env.block))
    later = env.plus_seconds((DAY * 3 + HOUR).value)
    assert claims.claim_tokens("bob", later.block, 540) == 540
    assert claims.query_claims("bob").claims == ()


def test_cap_holds_back_claims_that_do_not_fit(env):
    claims = Claims()
    release = HOUR.after(env.block)
    claims.create_claim("bob", 300, release)
    claims.create_claim("bob", 500, release)
    claims.create_claim("bob", 100, release)
    later = env.plus_seconds(DAY.value)
    paid = claims.claim_tokens("bob", later.block, 450)
    assert paid == 400
    assert claims.query_claims("bob").claims == (Claim(amount=500, release_at=release),)


def test_height_expiration(env):
    claims = Claims()
    claims.create_claim("bob", 7, Expiration.at_height(env.block.height))
    assert claims.claim_tokens("bob", env.block, None) == 7


def test_other_address_unaffected(env):
    claims = Claims()
    release = HOUR.after(env.block)
    claims.create_claim("bob", 5, release)
    claims.create_claim("carl", 6, release)
    claims.claim_tokens("bob", env.plus_seconds(DAY.value).block, None)
    assert claims.query_claims("carl").claims == (Claim(amount=6, release_at=release),)


def test_claims_response_json(env):
    release = Expiration.at_height(100)
    response = ClaimsResponse(claims=(Claim(amount=540, release_at=release),))
    assert response.to_json() == {
        "claims": [{"amount": "540", "release_at": {"at_height": 100}}]
    }