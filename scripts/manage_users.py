#!/usr/bin/env python3
"""
Inspect and edit the Chirpy user database from the command line.

Uso:
  python scripts/manage_users.py [--db userDatabase.json] create --email a@x.com --password-hash 6869
  python scripts/manage_users.py list
  python scripts/manage_users.py show --id 1
  python scripts/manage_users.py update --id 1 --email b@x.com --password-hash 6869
  python scripts/manage_users.py upgrade --id 1
  python scripts/manage_users.py store-token --id 1 --token abc
  python scripts/manage_users.py revoke-token --id 1

Password hashes are given as hex; this script never hashes anything.
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

# Garantir que o pacote chirpy seja importável quando rodado diretamente
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chirpy.core.config import get_settings
from chirpy.core.logging import configure_logging
from chirpy.domain.users import User
from chirpy.repositories.json_storage import StoreError, UserStore


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value.strip())
    except ValueError:
        raise argparse.ArgumentTypeError("password hash must be hex encoded")


def _print_user(user: User) -> None:
    print(json.dumps(user.public_dict(), ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Gerenciar usuarios do banco JSON")
    ap.add_argument("--db", help="Caminho do arquivo JSON (default: CHIRPY_USERS_DB)")
    ap.add_argument("--log-level", help="Nivel de log (default: LOG_LEVEL)")
    sub = ap.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Criar usuario")
    create.add_argument("--email", required=True)
    create.add_argument("--password-hash", required=True, type=_hex_bytes)

    sub.add_parser("list", help="Listar usuarios por ID")

    show = sub.add_parser("show", help="Mostrar um usuario")
    show.add_argument("--id", required=True, type=int)

    update = sub.add_parser("update", help="Trocar email e senha")
    update.add_argument("--id", required=True, type=int)
    update.add_argument("--email", required=True)
    update.add_argument("--password-hash", required=True, type=_hex_bytes)

    upgrade = sub.add_parser("upgrade", help="Marcar usuario como Chirpy Red")
    upgrade.add_argument("--id", required=True, type=int)

    store_token = sub.add_parser("store-token", help="Gravar refresh token")
    store_token.add_argument("--id", required=True, type=int)
    store_token.add_argument("--token", required=True)

    revoke = sub.add_parser("revoke-token", help="Revogar refresh token")
    revoke.add_argument("--id", required=True, type=int)
    return ap


def run(store: UserStore, args: argparse.Namespace) -> None:
    if args.command == "create":
        _print_user(store.create_user(args.email.strip(), args.password_hash))
    elif args.command == "list":
        for user in store.list_users():
            _print_user(user)
    elif args.command == "show":
        _print_user(store.get_user_by_id(args.id))
    elif args.command == "update":
        user = store.update_user(args.id, args.email.strip(), args.password_hash)
        if user.is_empty:
            print(f"Aviso: usuario {args.id} nao existe, nada alterado")
        else:
            _print_user(user)
    elif args.command == "upgrade":
        store.upgrade_user(args.id)
        print(f"OK: usuario {args.id} atualizado para Chirpy Red")
    elif args.command == "store-token":
        store.store_refresh_token(args.id, args.token)
        print(f"OK: token gravado para usuario {args.id}")
    elif args.command == "revoke-token":
        store.revoke_refresh_token(args.id)
        print(f"OK: token revogado para usuario {args.id}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    path = (args.db or settings.users_db_path).strip()
    try:
        store = UserStore.open(path, atomic_writes=settings.atomic_writes)
        run(store, args)
    except StoreError as exc:
        sys.stderr.write(f"Erro: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
