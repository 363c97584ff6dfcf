"""Row builders shared by the test suite."""
from cissp_mastery.models import Deck, Flashcard, QuizQuestion, StudyClass, Subscription, User, UserStats


async def add_user(session, user_id: str, role: str = "user", plan_type: str = "free", status: str = "active"):
    user = User(auth_user_id=user_id, email=f"{user_id}@example.com", name=user_id.title(), role=role)
    session.add(user)
    session.add(Subscription(user_id=user_id, plan_type=plan_type, status=status))
    session.add(UserStats(user_id=user_id))
    await session.commit()
    return user


def sample_options():
    return [
        {"text": "Confidentiality", "is_correct": True},
        {"text": "Availability", "is_correct": False},
        {"text": "Integrity", "is_correct": False},
        {"text": "Non-repudiation", "is_correct": False},
    ]


async def build_class_tree(session, admin_id: str, decks: int = 2, cards: int = 3, questions: int = 2, premium=False):
    """One class with ``decks`` decks, ``cards`` flashcards each and ``questions`` quiz questions per card."""
    study_class = StudyClass(name="Security and Risk Management", position_index=0, created_by=admin_id)
    session.add(study_class)
    await session.flush()

    deck_rows, card_rows = [], []
    for d in range(decks):
        deck = Deck(
            class_id=study_class.id,
            name=f"Domain 1.{d}",
            position_index=d,
            is_premium=premium,
            created_by=admin_id,
        )
        session.add(deck)
        await session.flush()
        deck_rows.append(deck)
        for c in range(cards):
            card = Flashcard(
                deck_id=deck.id,
                question=f"Question {d}.{c}",
                answer=f"Answer {d}.{c}",
                position_index=c,
                created_by=admin_id,
            )
            session.add(card)
            await session.flush()
            card_rows.append(card)
            for q in range(questions):
                session.add(
                    QuizQuestion(
                        flashcard_id=card.id,
                        question_text=f"Quiz {d}.{c}.{q}",
                        options=sample_options(),
                        position_index=q,
                        created_by=admin_id,
                    )
                )
    await session.commit()
    return {"class": study_class, "decks": deck_rows, "flashcards": card_rows}
