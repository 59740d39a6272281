import unittest

import jwt

from civic.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class SecurityTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("Passw0rd")
        self.assertNotEqual(hashed, "Passw0rd")
        self.assertTrue(verify_password("Passw0rd", hashed))
        self.assertFalse(verify_password("passw0rd", hashed))

    def test_verify_against_malformed_hash(self):
        self.assertFalse(verify_password("Passw0rd", "not-a-bcrypt-hash"))

    def test_token_roundtrip_carries_claims(self):
        token = create_access_token({"id": 7, "email": "a@example.com", "role": "USER"}, "s3cret")
        claims = decode_access_token(token, "s3cret")
        self.assertEqual(claims["id"], 7)
        self.assertEqual(claims["role"], "USER")
        self.assertIn("exp", claims)

    def test_wrong_secret_rejected(self):
        token = create_access_token({"id": 7}, "s3cret")
        with self.assertRaises(jwt.InvalidSignatureError):
            decode_access_token(token, "other")

    def test_expired_token_rejected(self):
        token = create_access_token({"id": 7}, "s3cret", expires_hours=-1)
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_access_token(token, "s3cret")


if __name__ == "__main__":
    unittest.main()
