#!/usr/bin/env python3
"""
Admin tools for ExamGuard.
Command-line helpers for administrative tasks.
"""

import os
import sys
import argparse
from typing import Optional

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv

dotenv_path = os.path.join(os.path.dirname(__file__), '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)


from sqlalchemy import func
from sqlalchemy.orm import Session
from examguard.core.database import SessionLocal
from examguard.models.activity_log import ActivityLog
from examguard.models.disqualification import DisqualifiedUser
from examguard.models.exam import ScheduledExam, ExamResult
from examguard.models.user import User
from examguard.models.whitelist import WhitelistedUser
from examguard.proctoring import ActivityType
from examguard.schemas.user import UserCreate
from examguard.services.activity_service import ActivityLogService
from examguard.services.disqualification_service import DisqualificationService
from examguard.services.user_service import UserService
from examguard.utils.timezone import format_display_time


def get_db() -> Session:
    return SessionLocal()


def create_admin_user(email: str, password: str, full_name: str) -> bool:
    """Create a user with administrator rights"""
    db = get_db()
    try:
        user_service = UserService(db)

        if user_service.get_user_by_email(email):
            print(f"❌ User with email {email} already exists")
            return False

        user_data = UserCreate(email=email, password=password, full_name=full_name)
        user = user_service.create_user(user_data, is_superuser=True)

        print("✅ Administrator created")
        print(f"   Email: {email}")
        print(f"   Name: {full_name}")
        print(f"   ID: {user.id}")
        return True

    except ValueError as e:
        print(f"❌ Failed to create administrator: {e}")
        return False
    finally:
        db.close()


def list_users(show_detailed: bool = False) -> None:
    db = get_db()
    try:
        users = UserService(db).list_users()

        if not users:
            print("📋 No users found")
            return

        print(f"📋 Total users: {len(users)}")
        print("=" * 80)

        for user in users:
            status = "👑 Admin" if user.is_superuser else "👤 User"
            print(f"ID: {user.id} | {status}")
            print(f"   Name: {user.full_name}")
            print(f"   Email: {user.email}")
            print(f"   Created: {format_display_time(user.created_at)}")

            if show_detailed:
                results = db.query(ExamResult).filter(ExamResult.user_id == user.id).count()
                disqualifications = db.query(DisqualifiedUser).filter(DisqualifiedUser.user_id == user.id).count()
                print(f"   Submitted exams: {results} | Disqualifications: {disqualifications}")

            print("-" * 80)
    finally:
        db.close()


def show_activity_logs(
    admin_id: int,
    search: Optional[str] = None,
    activity_type: Optional[ActivityType] = None,
    aggregated: bool = False,
    limit: int = 50,
) -> None:
    """Activity logs for one admin's exams, newest first"""
    db = get_db()
    try:
        service = ActivityLogService(db)
        logs = service.list_logs(admin_id, search=search, activity_type=activity_type, limit=limit)

        if not logs:
            print(f"📊 No activity logs for admin {admin_id}")
            return

        print(f"📊 Activity logs for admin {admin_id}")
        print("=" * 80)

        if aggregated:
            for entry in service.aggregate(logs):
                repeat = f" (x{entry['count']})" if entry["count"] > 1 else ""
                print(f"[{format_display_time(entry['timestamp'])}] {entry['user_email']} | "
                      f"{entry['activity_type']}{repeat} | {entry['details']}")
            return

        for log in logs:
            print(f"[{format_display_time(log.timestamp)}] {log.user_email} | {log.activity_type} | {log.details}")
    finally:
        db.close()


def list_disqualified(admin_id: Optional[int] = None) -> None:
    db = get_db()
    try:
        query = db.query(DisqualifiedUser)
        if admin_id is not None:
            query = query.filter(DisqualifiedUser.admin_id == admin_id)
        records = query.order_by(DisqualifiedUser.disqualified_at.desc()).all()

        if not records:
            print("✅ No disqualified users")
            return

        print(f"🚫 Disqualified users: {len(records)}")
        print("=" * 80)
        for record in records:
            print(f"ID: {record.id} | user {record.user_email} ({record.user_id}) | exam {record.exam_id}")
            print(f"   At: {format_display_time(record.disqualified_at)}")
            print(f"   Reason: {record.reason}")
            print("-" * 80)
    finally:
        db.close()


def override_disqualification(admin_email: str, record_id: int) -> bool:
    """Lift a disqualification on behalf of an admin"""
    db = get_db()
    try:
        admin = UserService(db).get_user_by_email(admin_email)
        if not admin or not admin.is_superuser:
            print(f"❌ {admin_email} is not an administrator")
            return False

        record, rewhitelisted = DisqualificationService(db).override(admin, record_id)
        if record is None:
            print(f"❌ Disqualification {record_id} not found for admin {admin_email}")
            return False

        print(f"✅ Disqualification for {record.user_email} on exam {record.exam_id} lifted")
        if rewhitelisted:
            print("   User was re-added to the whitelist")
        return True
    finally:
        db.close()


def database_stats() -> None:
    db = get_db()
    try:
        users_count = db.query(User).count()
        admins_count = db.query(User).filter(User.is_superuser == True).count()
        exams_count = db.query(ScheduledExam).count()
        whitelist_count = db.query(WhitelistedUser).count()
        results_count = db.query(ExamResult).count()
        disqualified_count = db.query(DisqualifiedUser).count()
        logs_count = db.query(ActivityLog).count()

        print("📊 Database statistics")
        print("=" * 50)
        print(f"👥 Users: {users_count} (admins: {admins_count})")
        print(f"📝 Scheduled exams: {exams_count}")
        print(f"📋 Whitelist entries: {whitelist_count}")
        print(f"✅ Submitted results: {results_count}")
        print(f"🚫 Disqualifications: {disqualified_count}")
        print(f"🗒  Activity log entries: {logs_count}")

        type_stats = db.query(
            ActivityLog.activity_type,
            func.count(ActivityLog.id)
        ).group_by(ActivityLog.activity_type).order_by(func.count(ActivityLog.id).desc()).all()

        if type_stats:
            print("\n📈 Activity by type:")
            for activity_type, count in type_stats:
                print(f"   {activity_type}: {count}")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Admin tools for ExamGuard")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    create_admin_parser = subparsers.add_parser('create-admin', help='Create an administrator')
    create_admin_parser.add_argument('--email', required=True, help='Administrator email')
    create_admin_parser.add_argument('--password', required=True, help='Administrator password')
    create_admin_parser.add_argument('--name', required=True, help='Administrator full name')

    list_users_parser = subparsers.add_parser('list-users', help='List users')
    list_users_parser.add_argument('--detailed', action='store_true', help='Include results and disqualifications')

    logs_parser = subparsers.add_parser('logs', help='Show activity logs')
    logs_parser.add_argument('--admin-id', type=int, required=True, help='Owning admin ID')
    logs_parser.add_argument('--search', help='Filter by user email')
    logs_parser.add_argument('--type', choices=[t.value for t in ActivityType], help='Activity type')
    logs_parser.add_argument('--aggregated', action='store_true', help='Collapse repeated entries')
    logs_parser.add_argument('--limit', type=int, default=50, help='Maximum entries')

    disqualified_parser = subparsers.add_parser('disqualified', help='List disqualified users')
    disqualified_parser.add_argument('--admin-id', type=int, help='Owning admin ID')

    override_parser = subparsers.add_parser('override', help='Lift a disqualification')
    override_parser.add_argument('--admin-email', required=True, help='Administrator email')
    override_parser.add_argument('--record-id', type=int, required=True, help='Disqualification record ID')

    subparsers.add_parser('stats', help='Show database statistics')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == 'create-admin':
        create_admin_user(args.email, args.password, args.name)

    elif args.command == 'list-users':
        list_users(args.detailed)

    elif args.command == 'logs':
        activity_type = ActivityType(args.type) if args.type else None
        show_activity_logs(args.admin_id, args.search, activity_type, args.aggregated, args.limit)

    elif args.command == 'disqualified':
        list_disqualified(args.admin_id)

    elif args.command == 'override':
        override_disqualification(args.admin_email, args.record_id)

    elif args.command == 'stats':
        database_stats()


if __name__ == "__main__":
    main()
