from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional

import typer

import pqcmsg
from pqcmsg import backend
from pqcmsg.envelope import (
    SecureEnvelope,
    decode_envelope,
    encode_envelope,
    envelope_from_dict,
    envelope_to_dict,
)
from pqcmsg.errors import MessagingError
from pqcmsg.messaging import SecureMessenger
from pqcmsg.schemes import KemVariant, SignatureScheme
from pqcmsg.settings import load_settings

app = typer.Typer(add_completion=False, help="Hybrid post-quantum secure messaging CLI")

log = logging.getLogger(__name__)

# Exit code for a rejected envelope, distinct from usage errors (typer uses 2
# for bad arguments; 3 keeps the two apart in scripts).
EXIT_REJECTED = 3

_STATE: dict = {}


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    """Configure logging from --verbose or the log_level setting."""
    try:
        settings = load_settings(config)
    except MessagingError as exc:
        typer.echo(f"Invalid settings: {exc}", err=True)
        raise typer.Exit(code=1)
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    _STATE["settings"] = settings


def _messenger(kem: Optional[str] = None) -> SecureMessenger:
    try:
        pqcmsg.init()
        return SecureMessenger(kem_variant=kem, settings=_STATE.get("settings"))
    except MessagingError as exc:
        typer.echo(f"Cannot start messenger: {exc}", err=True)
        raise typer.Exit(code=1)


def _read_bytes(path: Path, label: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        typer.echo(f"Cannot read {label} {path}: {exc}", err=True)
        raise typer.Exit(code=1)


def _load_envelope(data: bytes) -> SecureEnvelope:
    stripped = data.lstrip()
    if stripped.startswith(b"{"):
        return envelope_from_dict(json.loads(stripped.decode("utf-8")))
    return decode_envelope(data)


@app.command("list-schemes")
def list_schemes() -> None:
    """List signature schemes and KEM variants, with backend support."""
    ready = backend.is_initialized()
    typer.echo("Signature schemes:")
    for scheme in SignatureScheme:
        info = scheme.info
        line = f"- {scheme.value} (tag 0x{info.wire_tag:02x}, category {info.category}, {info.mechanism})"
        if ready:
            try:
                backend.signature_adapter(scheme)
                line += " [supported]"
            except MessagingError:
                line += " [unsupported]"
        typer.echo(line)
        if info.note:
            typer.echo(f"    {info.note}")
    typer.echo("KEM variants:")
    for variant in KemVariant:
        info = variant.info
        typer.echo(f"- {variant.value} (category {info.category}, {info.mechanism})")


@app.command("keygen-kem")
def keygen_kem(
    name: str = typer.Argument(..., help="Key file stem, e.g. bob"),
    out_dir: Path = typer.Option(Path("."), "--out-dir", help="Directory for the key files."),
    kem: Optional[str] = typer.Option(None, "--kem", help="KEM variant (default from settings)."),
) -> None:
    """Generate a KEM key pair: NAME.kem.pub and NAME.kem.key."""
    messenger = _messenger(kem)
    try:
        pair = messenger.generate_kem_keypair()
    except MessagingError as exc:
        typer.echo(f"Key generation failed ({exc.reason.value}): {exc}", err=True)
        raise typer.Exit(code=1)
    out_dir.mkdir(parents=True, exist_ok=True)
    pub = out_dir / f"{name}.kem.pub"
    key = out_dir / f"{name}.kem.key"
    pub.write_bytes(pair.public_key)
    key.write_bytes(pair.secret_key)
    typer.echo(f"[KEM] {messenger.kem_variant.value}: wrote {pub} and {key}")


@app.command("keygen-sig")
def keygen_sig(
    name: str = typer.Argument(..., help="Key file stem, e.g. alice"),
    scheme: Optional[str] = typer.Option(None, "--scheme", help="Signature scheme (default from settings)."),
    out_dir: Path = typer.Option(Path("."), "--out-dir", help="Directory for the key files."),
) -> None:
    """Generate a signing key pair: NAME.sig.pub and NAME.sig.key."""
    messenger = _messenger()
    try:
        pair = messenger.generate_signing_keypair(scheme)
    except MessagingError as exc:
        typer.echo(f"Key generation failed: {exc}", err=True)
        raise typer.Exit(code=1)
    out_dir.mkdir(parents=True, exist_ok=True)
    pub = out_dir / f"{name}.sig.pub"
    key = out_dir / f"{name}.sig.key"
    pub.write_bytes(pair.public_key)
    key.write_bytes(pair.secret_key)
    typer.echo(f"[SIG] {scheme or messenger.settings.default_scheme.value}: wrote {pub} and {key}")


@app.command()
def seal(
    sender_key: Path = typer.Option(..., "--sender-key", help="Sender signing secret key file."),
    recipient_pub: Path = typer.Option(..., "--recipient-pub", help="Recipient KEM public key file."),
    out: Path = typer.Option(..., "--out", help="Where to write the envelope."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message text."),
    infile: Optional[Path] = typer.Option(None, "--in", help="Read the message from a file instead."),
    scheme: Optional[str] = typer.Option(None, "--scheme", help="Signature scheme (default from settings)."),
    kem: Optional[str] = typer.Option(None, "--kem", help="KEM variant (default from settings)."),
    as_json: bool = typer.Option(False, "--json", help="Write base64 JSON instead of wire bytes."),
) -> None:
    """Encrypt and sign a message into a secure envelope."""
    if (message is None) == (infile is None):
        typer.echo("Provide exactly one of --message or --in.", err=True)
        raise typer.Exit(code=2)
    plaintext = message.encode("utf-8") if message is not None else _read_bytes(infile, "message")
    messenger = _messenger(kem)
    try:
        envelope = messenger.create_secure_message(
            _read_bytes(sender_key, "sender key"),
            _read_bytes(recipient_pub, "recipient public key"),
            plaintext,
            scheme,
        )
    except MessagingError as exc:
        typer.echo(f"Seal failed ({exc.reason.value}): {exc}", err=True)
        raise typer.Exit(code=1)
    if as_json:
        out.write_text(json.dumps(envelope_to_dict(envelope), indent=2), encoding="utf-8")
    else:
        out.write_bytes(encode_envelope(envelope))
    typer.echo(f"Sealed {len(plaintext)} bytes with {envelope.scheme.value} -> {out}")


@app.command("open")
def open_envelope(
    envelope_path: Path = typer.Argument(..., help="Envelope file (wire bytes or JSON)."),
    recipient_key: Path = typer.Option(..., "--recipient-key", help="Recipient KEM secret key file."),
    sender_pub: Path = typer.Option(..., "--sender-pub", help="Sender signing public key file."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write plaintext here instead of stdout."),
    kem: Optional[str] = typer.Option(None, "--kem", help="KEM variant (default from settings)."),
) -> None:
    """Verify the sender's signature and decrypt an envelope."""
    messenger = _messenger(kem)
    raw = _read_bytes(envelope_path, "envelope")
    try:
        envelope = _load_envelope(raw)
    except (MessagingError, ValueError) as exc:
        reason = exc.reason.value if isinstance(exc, MessagingError) else "malformed-envelope"
        typer.echo(f"Rejected: {reason}", err=True)
        raise typer.Exit(code=EXIT_REJECTED)
    recipient_sk = _read_bytes(recipient_key, "recipient key")
    sender_vk = _read_bytes(sender_pub, "sender public key")
    try:
        result = messenger.verify_secure_message(recipient_sk, sender_vk, envelope)
    except MessagingError as exc:
        typer.echo(f"Open failed ({exc.reason.value}): {exc}", err=True)
        raise typer.Exit(code=1)
    if not result.ok:
        typer.echo(f"Rejected: {result.reason.value if result.reason else 'rejected'}", err=True)
        raise typer.Exit(code=EXIT_REJECTED)
    assert result.message is not None
    if out is not None:
        out.write_bytes(result.message)
        typer.echo(f"Signature valid; wrote {len(result.message)} bytes to {out}")
    else:
        typer.echo(result.message.decode("utf-8", errors="replace"))


@app.command()
def demo(
    scheme: Optional[str] = typer.Option(None, "--scheme", help="Signature scheme (default from settings)."),
    plaintext: str = typer.Option("Hello Bob! This is a secret message from Alice.", "--message", "-m"),
) -> None:
    """Alice -> Bob walkthrough: keygen, seal, open, then a tampered copy."""
    messenger = _messenger()
    try:
        alice = messenger.generate_signing_keypair(scheme)
        bob = messenger.generate_kem_keypair()
        envelope = messenger.create_secure_message(alice.secret_key, bob.public_key, plaintext, scheme)
    except MessagingError as exc:
        typer.echo(f"Demo failed ({exc.reason.value}): {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"KEM: {messenger.kem_variant.value}  scheme: {envelope.scheme.value}")
    typer.echo(
        f"Envelope: kem_ct={len(envelope.kem_ciphertext)} nonce={len(envelope.nonce)} "
        f"ct={len(envelope.ciphertext)} tag={len(envelope.tag)} sig={len(envelope.signature)} bytes"
    )
    result = messenger.verify_secure_message(bob.secret_key, alice.public_key, envelope)
    typer.echo(f"Decrypted: {result.message.decode('utf-8') if result.message else None}")
    typer.echo(f"Signature valid: {result.signature_valid}")

    flipped = bytearray(envelope.ciphertext)
    if flipped:
        flipped[0] ^= 0x01
    tampered = SecureEnvelope(
        envelope.kem_ciphertext, envelope.nonce, bytes(flipped), envelope.tag, envelope.signature, envelope.scheme
    )
    rejected = messenger.verify_secure_message(bob.secret_key, alice.public_key, tampered)
    typer.echo(f"Tampered copy: {rejected.reason.value if rejected.reason else 'accepted'}")


@app.command(name="probe-oqs")
def probe_oqs() -> None:
    """Probe which KEM/SIG mechanisms your liboqs install enables."""
    from pqcmsg_liboqs._util import enabled_kem_mechanisms, enabled_sig_mechanisms, try_import_oqs

    oqs_mod = try_import_oqs()
    if oqs_mod is None:
        typer.echo("oqs import failed; install liboqs-python")
        raise typer.Exit(code=1)
    kem_candidates = [m for v in KemVariant for m in v.info.mechanisms]
    sig_candidates = [m for s in SignatureScheme for m in s.info.mechanisms]
    typer.echo("KEM mechanisms:")
    for n in enabled_kem_mechanisms(oqs_mod, kem_candidates):
        typer.echo(f"- {n}")
    typer.echo("SIG mechanisms:")
    for n in enabled_sig_mechanisms(oqs_mod, sig_candidates):
        typer.echo(f"- {n}")


def app_main():
    app()


if __name__ == "__main__":
    app_main()
