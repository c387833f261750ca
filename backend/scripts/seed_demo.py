"""CLI script to seed a demo dataset into the backend DB.

Creates an admin, a trainer and a student, a domain, and one active
course with two modules, a few chapters, a text lesson and a quiz. The
student is enrolled in the course. Running it twice is harmless: a
second run finds the admin account and stops.

Usage: python scripts/seed_demo.py [--password PASSWORD]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `elearning` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from elearning.database import engine, create_db_and_tables
from elearning import repositories, services
from elearning.models import ContentType, Role

ADMIN_EMAIL = 'admin@example.com'


def main(password: str = 'demo1234'):
    """Seed the demo accounts and course, printing what was created."""
    create_db_and_tables()
    with Session(engine) as session:
        if repositories.UserRepository(session).get_by_email(ADMIN_EMAIL):
            print('Demo data already present; nothing to do.')
            return
        users = services.UserService(session)
        admin = users.create(ADMIN_EMAIL, 'Demo Admin', password, Role.ADMIN)
        trainer = users.create('trainer@example.com', 'Demo Trainer', password, Role.TRAINER)
        student = users.create('student@example.com', 'Demo Student', password, Role.STUDENT)
        domain = services.DomainService(session).create('Programming', 'Software development courses', '#0ea5e9')
        course = services.CourseService(session).create(
            'Introduction to Python Programming', 'Variables, control flow and functions.',
            domain_id=domain['id'], teacher_id=trainer['id'], is_active=True,
        )
        trainer_user = repositories.UserRepository(session).get(trainer['id'])
        modules = services.ModuleService(session)
        chapters = services.ChapterService(session)
        content = services.ContentService(session)
        basics = modules.create(trainer_user, course['id'], 'Basics')
        functions = modules.create(trainer_user, course['id'], 'Functions')
        first = chapters.create(trainer_user, basics['id'], 'Variables')
        chapters.create(trainer_user, basics['id'], 'Control flow')
        chapters.create(trainer_user, functions['id'], 'Defining functions')
        content.create(trainer_user, first['id'], 'What is a variable?', ContentType.TEXT, {
            'type': 'text', 'content': 'A variable names a value.', 'attachments': [],
        })
        content.create(trainer_user, first['id'], 'Variables quiz', ContentType.QUIZ, {
            'type': 'quiz',
            'passing_score': 50,
            'questions': [
                {'id': 'q1', 'question': 'Which keyword defines a function?', 'options': ['func', 'def', 'fn'],
                 'correct_answer': 1, 'explanation': '`def` starts a function definition.'},
                {'id': 'q2', 'question': 'Is `x = 1` an assignment?', 'options': ['yes', 'no'],
                 'correct_answer': 0},
            ],
        })
        services.EnrollmentService(session).create(student['id'], course['id'])
        print(f"Seeded admin={admin['email']} trainer={trainer['email']} student={student['email']}")
        print(f"Course '{course['title']}' slug={course['slug']} id={course['id']}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--password', type=str, default='demo1234')
    args = parser.parse_args()
    main(args.password)
