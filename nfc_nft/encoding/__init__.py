"""Deterministic encodings: host XDR serialization (`xdr`) and address strkeys (`strkey`)."""
