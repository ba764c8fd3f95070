from passlib.context import CryptContext

# pbkdf2_sha256 : aucune dépendance native, vérification à temps constant
otp_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_code(code: str) -> str:
    return otp_context.hash(code)


def verify_code(candidate: str, code_hash: str) -> bool:
    if not candidate or not code_hash:
        return False
    return otp_context.verify(candidate, code_hash)
