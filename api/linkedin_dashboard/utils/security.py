"""
Utilitaires de sécurité : chiffrement du token LinkedIn
⚠️ CRITIQUE : Le token LinkedIn voyage dans le JWT, il doit être chiffré

Utilise MultiFernet pour permettre la rotation des clés de chiffrement sans casser
les sessions existantes. La clé primaire chiffre les nouveaux tokens, les anciennes
clés permettent de déchiffrer les tokens existants.
"""
from cryptography.fernet import Fernet, MultiFernet
from typing import List
from ..config import settings


def get_fernet() -> MultiFernet:
    """
    Retourne une instance MultiFernet pour chiffrement/déchiffrement avec rotation

    Configuration dans .env:
    - TOKEN_ENCRYPTION_KEY: Clé actuelle (utilisée pour chiffrer)
    - FERNET_OLD_KEYS: Anciennes clés séparées par virgule (pour déchiffrer)
    """
    keys: List[bytes] = []

    # Clé primaire (obligatoire)
    if not settings.TOKEN_ENCRYPTION_KEY:
        raise RuntimeError("TOKEN_ENCRYPTION_KEY not configured in .env")
    keys.append(settings.TOKEN_ENCRYPTION_KEY.encode())

    # Anciennes clés (optionnel, pour rotation)
    for key in settings.FERNET_OLD_KEYS.split(','):
        key = key.strip()
        if key:
            keys.append(key.encode())

    return MultiFernet([Fernet(k) for k in keys])


def encrypt_token(token: str) -> str:
    """
    Chiffre le token LinkedIn avant de l'embarquer dans le JWT

    Returns:
        str: Token chiffré (Fernet, base64 url-safe)
    """
    return get_fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """
    Déchiffre le token LinkedIn extrait du JWT

    Raises:
        cryptography.fernet.InvalidToken: Si aucune clé ne correspond
    """
    return get_fernet().decrypt(encrypted_token.encode()).decode()


def generate_encryption_key() -> str:
    """
    Génère une nouvelle clé de chiffrement Fernet
    À utiliser UNE SEULE FOIS pour créer TOKEN_ENCRYPTION_KEY
    """
    return Fernet.generate_key().decode()


# Helper pour générer la clé
if __name__ == "__main__":
    print("Nouvelle clé de chiffrement Fernet:")
    print(generate_encryption_key())
    print("\nAjoutez cette clé dans .env comme TOKEN_ENCRYPTION_KEY")
