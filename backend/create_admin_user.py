"""Create (or reset) the first admin account so someone can sign in and register staff"""
import argparse
import asyncio
import getpass

from sqlalchemy import select

from aaghaaz.core.database import get_session_local, init_db
from aaghaaz.core.security import get_password_hash, validate_password_strength
from aaghaaz.models.user import Qualification, User, UserRole


async def create_admin(email: str, password: str, cnic: str, first_name: str, last_name: str):
    await init_db()
    session_local = get_session_local()
    async with session_local() as db:
        email = email.strip().lower()
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()

        if existing:
            existing.hashed_password = get_password_hash(password)
            existing.role = UserRole.ADMIN
            existing.is_verified = True
            print(f"Updated existing user as admin: {existing.email}")
        else:
            admin = User(
                first_name=first_name,
                last_name=last_name,
                email=email,
                cnic=cnic,
                hashed_password=get_password_hash(password),
                expertise=["Administration"],
                languages=[],
                qualification=Qualification.OTHER,
                role=UserRole.ADMIN,
                is_verified=True,
            )
            db.add(admin)
            print(f"Created admin user: {email}")

        await db.commit()


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--cnic", required=True, help="13 digits, no dashes")
    parser.add_argument("--first-name", default="System")
    parser.add_argument("--last-name", default="Admin")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    validate_password_strength(password)

    asyncio.run(create_admin(args.email, password, args.cnic, args.first_name, args.last_name))


if __name__ == "__main__":
    main()
