"""
nfc-nft — operator / developer CLI for the chip-bound token contract.

Runs the contract against a local KV store (`--db` or NFC_NFT_DB; use a file
path or sqlite:// URL to keep state between commands). Authorization is
mocked: the CLI acts as every party. Chip proofs are passed in hex.

Examples:
  nfc-nft --db ./ledger.db init GADMIN... "Chimp" CHMP ipfs://abcd
  nfc-nft --db ./ledger.db sign --chip-seed chip-a --signer GADMIN... --nonce 1 --message hi
  nfc-nft --db ./ledger.db mint --message hi --signature <hex> --recovery-id 0 \\
          --public-key <hex> --nonce 1
  nfc-nft --db ./ledger.db token 0
  nfc-nft parse-der 30440220...
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from nfc_nft import logging as nlog
from nfc_nft.address import Address
from nfc_nft.config import load_config
from nfc_nft.contract import NFCtoNFT, TokenState
from nfc_nft.db import open_kv
from nfc_nft.errors import NftError
from nfc_nft.runtime.env import Env
from nfc_nft.tools import sigtools
from nfc_nft.version import __version__

app = typer.Typer(
    name="nfc-nft",
    help="Chip-authenticated NFT ledger: mint, claim, transfer, clawback and tooling",
    no_args_is_help=True,
    add_completion=False,
)

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


class GlobalContext:
    def __init__(self) -> None:
        self.db: str = ":memory:"
        self.json_output: bool = False


_ctx = GlobalContext()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    db: Optional[str] = typer.Option(None, "--db", help="KV store: :memory:, a file path or sqlite:// URL"),
    json_output: bool = typer.Option(False, "--json", help="Machine-readable JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Print version and exit"
    ),
) -> None:
    cfg = load_config()
    _ctx.db = db or cfg.db_url
    _ctx.json_output = json_output
    nlog.configure_from_config(cfg)
    if verbose:
        nlog.configure(level="DEBUG")


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _hex(value: str, name: str) -> bytes:
    v = value.strip()
    if v.startswith(("0x", "0X")):
        v = v[2:]
    try:
        return bytes.fromhex(v)
    except ValueError:
        raise typer.BadParameter(f"{name} must be hex") from None


def _addr(value: str, name: str) -> Address:
    try:
        return Address.parse(value)
    except NftError as exc:
        raise typer.BadParameter(f"{name}: {exc.message}") from None


def _render(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Address):
        return str(v)
    if isinstance(v, TokenState):
        return v.value
    if isinstance(v, dict):
        return {k: _render(x) for k, x in v.items()}
    return v


def _emit(result: Dict[str, Any], title: Optional[str] = None) -> None:
    data = _render(result)
    if _ctx.json_output:
        typer.echo(json.dumps({"ok": True, **data}, sort_keys=True))
        return
    if len(data) == 1:
        console.print(next(iter(data.values())))
        return
    table = Table(title=title, show_header=False)
    table.add_column("field", style="cyan")
    table.add_column("value")
    for k, v in data.items():
        table.add_row(k, "-" if v is None else str(v))
    console.print(table)


def _fail(exc: NftError) -> None:
    if _ctx.json_output:
        typer.echo(json.dumps({"ok": False, "error": exc.to_dict()}, sort_keys=True))
    else:
        err_console.print(f"[bold red]error[/bold red] {exc.code}: {exc.message}")
    raise typer.Exit(1)


@contextmanager
def _contract() -> Iterator[NFCtoNFT]:
    try:
        kv = open_kv(_ctx.db)
    except NftError as exc:
        _fail(exc)
    env = Env(kv).mock_all_auths()
    try:
        yield NFCtoNFT(env)
    except NftError as exc:
        _fail(exc)
    finally:
        env.close()


def _proof_options(message: str, signature: str, public_key: str) -> tuple:
    return message.encode("utf-8"), _hex(signature, "signature"), _hex(public_key, "public key")


# ---------------------------------------------------------------------------
# contract commands
# ---------------------------------------------------------------------------


@app.command()
def init(
    admin: str = typer.Argument(..., help="Admin address (G... or C...)"),
    name: str = typer.Argument(...),
    symbol: str = typer.Argument(...),
    uri: str = typer.Argument(..., help="Base URI; token URIs are <uri>/<id>"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Supply cap (default NFC_NFT_DEFAULT_MAX_TOKENS)"),
) -> None:
    """Initialize the collection (once)."""
    cap = max_tokens if max_tokens is not None else load_config().default_max_tokens
    with _contract() as nft:
        nft.initialize(_addr(admin, "admin"), name, symbol, uri, cap)
        _emit({"admin": nft.admin(), "name": name, "symbol": symbol, "uri": uri, "max_tokens": cap})


@app.command()
def mint(
    message: str = typer.Option(..., "--message", "-m"),
    signature: str = typer.Option(..., "--signature", "-s", help="64-byte r||s, hex"),
    recovery_id: int = typer.Option(..., "--recovery-id", "-r"),
    public_key: str = typer.Option(..., "--public-key", "-k", help="65-byte uncompressed chip key, hex"),
    nonce: int = typer.Option(..., "--nonce", "-n"),
) -> None:
    """Mint the token bound to a chip (admin)."""
    msg, sig, pk = _proof_options(message, signature, public_key)
    with _contract() as nft:
        token_id = nft.mint(msg, sig, recovery_id, pk, nonce)
        _emit({"token_id": token_id})


@app.command()
def claim(
    claimant: str = typer.Argument(...),
    message: str = typer.Option(..., "--message", "-m"),
    signature: str = typer.Option(..., "--signature", "-s"),
    recovery_id: int = typer.Option(..., "--recovery-id", "-r"),
    public_key: str = typer.Option(..., "--public-key", "-k"),
    nonce: int = typer.Option(..., "--nonce", "-n"),
) -> None:
    """Claim a minted token for CLAIMANT."""
    msg, sig, pk = _proof_options(message, signature, public_key)
    with _contract() as nft:
        token_id = nft.claim(_addr(claimant, "claimant"), msg, sig, recovery_id, pk, nonce)
        _emit({"token_id": token_id, "owner": nft.owner_of(token_id)})


@app.command()
def transfer(
    from_: str = typer.Argument(..., metavar="FROM"),
    to: str = typer.Argument(...),
    token_id: int = typer.Argument(...),
    message: str = typer.Option(..., "--message", "-m"),
    signature: str = typer.Option(..., "--signature", "-s"),
    recovery_id: int = typer.Option(..., "--recovery-id", "-r"),
    public_key: str = typer.Option(..., "--public-key", "-k"),
    nonce: int = typer.Option(..., "--nonce", "-n"),
) -> None:
    """Transfer TOKEN_ID from FROM to TO with the token's chip."""
    msg, sig, pk = _proof_options(message, signature, public_key)
    with _contract() as nft:
        nft.transfer(_addr(from_, "from"), _addr(to, "to"), token_id, msg, sig, recovery_id, pk, nonce)
        _emit({"token_id": token_id, "owner": nft.owner_of(token_id)})


@app.command()
def clawback(token_id: int = typer.Argument(...)) -> None:
    """Quarantine TOKEN_ID (admin)."""
    with _contract() as nft:
        nft.clawback(token_id)
        _emit({"token_id": token_id, "state": nft.token_state(token_id)})


@app.command()
def upgrade(wasm_hash: str = typer.Argument(..., help="32-byte code hash, hex")) -> None:
    """Record a new contract code hash (admin)."""
    h = _hex(wasm_hash, "wasm hash")
    with _contract() as nft:
        nft.upgrade(h)
        _emit({"code_hash": nft.code_hash()})


# ---------------------------------------------------------------------------
# queries
# ---------------------------------------------------------------------------


@app.command()
def info() -> None:
    """Collection metadata and counters."""
    with _contract() as nft:
        _emit(
            {
                "contract": nft.address,
                "admin": nft.admin(),
                "name": nft.name(),
                "symbol": nft.symbol(),
                "uri": nft.base_uri(),
                "max_tokens": nft.max_tokens(),
                "next_token_id": nft.next_token_id(),
            },
            title="collection",
        )


@app.command()
def token(token_id: int = typer.Argument(...)) -> None:
    """State, chip key, owner and URI of TOKEN_ID."""
    with _contract() as nft:
        state = nft.token_state(token_id)
        out: Dict[str, Any] = {"token_id": token_id, "state": state, "public_key": None, "owner": None, "uri": None}
        if state is not TokenState.UNMINTED:
            out["public_key"] = nft.public_key(token_id)
            out["uri"] = nft.token_uri(token_id)
        if state in (TokenState.CLAIMED, TokenState.CLAWED_BACK):
            out["owner"] = nft.owner_of(token_id)
        _emit(out, title=f"token {token_id}")


@app.command()
def nonce(public_key: str = typer.Argument(..., help="65-byte chip key, hex")) -> None:
    """Last accepted nonce of a chip (0 if none)."""
    pk = _hex(public_key, "public key")
    with _contract() as nft:
        _emit({"nonce": nft.get_nonce(pk)})


@app.command()
def balance(address: str = typer.Argument(...)) -> None:
    """Number of tokens held by ADDRESS."""
    with _contract() as nft:
        _emit({"balance": nft.balance(_addr(address, "address"))})


# ---------------------------------------------------------------------------
# signature tooling (no store access)
# ---------------------------------------------------------------------------


def _tool(fn) -> Any:
    try:
        return fn()
    except NftError as exc:
        _fail(exc)


@app.command()
def digest(
    message: str = typer.Argument(...),
    signer: str = typer.Argument(...),
    nonce: int = typer.Argument(...),
) -> None:
    """Digest a chip must sign for SIGNER at NONCE."""
    who = _addr(signer, "signer")
    _emit({"digest": _tool(lambda: sigtools.message_digest(message.encode("utf-8"), who, nonce))})


@app.command("parse-der")
def parse_der(der_hex: str = typer.Argument(..., help="DER ECDSA signature, hex")) -> None:
    """Split a DER signature into r, s and the low-s signature."""
    r, s = _tool(lambda: sigtools.parse_der_signature(der_hex))
    s_low = _tool(lambda: sigtools.normalize_s(s))
    _emit({"r": r, "s": s, "s_normalized": s_low, "signature": r + s_low})


@app.command("recovery-id")
def recovery_id(
    digest: str = typer.Argument(..., help="32-byte digest, hex"),
    signature: str = typer.Argument(..., help="64-byte low-s signature, hex"),
    public_key: str = typer.Argument(..., help="65-byte chip key, hex"),
) -> None:
    """Find the recovery id that maps SIGNATURE back to PUBLIC_KEY."""
    d, sig, pk = _hex(digest, "digest"), _hex(signature, "signature"), _hex(public_key, "public key")
    _emit({"recovery_id": _tool(lambda: sigtools.find_recovery_id(d, sig, pk))})


@app.command()
def sign(
    chip_seed: str = typer.Option(..., "--chip-seed", help="Seed of a software chip (dev only)"),
    signer: str = typer.Option(..., "--signer"),
    nonce: int = typer.Option(..., "--nonce", "-n"),
    message: str = typer.Option(..., "--message", "-m"),
) -> None:
    """Produce a chip proof with a deterministic software chip."""
    chip = _tool(lambda: sigtools.SoftwareChip.from_seed(chip_seed))
    who = _addr(signer, "signer")
    proof = _tool(lambda: chip.sign_call(message.encode("utf-8"), who, nonce))
    _emit(
        {
            "public_key": proof.public_key,
            "signature": proof.signature,
            "recovery_id": proof.recovery_id,
            "nonce": proof.nonce,
        }
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
