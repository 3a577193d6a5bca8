from cloudstorage.infra.jwt.pyjwt_signer import PyJWTSigner

__all__ = ["PyJWTSigner"]
