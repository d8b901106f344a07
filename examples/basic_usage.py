"""
Example usage of clinsql.
"""

from clinsql import Text2SQL


def main():
    """Demonstrate question answering against the clinical schema."""

    # Database, VOYAGE_API_KEY and GROQ_API_KEY come from the environment or .env
    text2sql = Text2SQL()

    print("=== clinsql Example Usage ===\n")

    print("1. Live whitelist:")
    try:
        for table in text2sql.get_schema_info():
            print(f"  - {table.render()}")
    except Exception as e:
        print(f"✗ Error getting schema: {e}")
    print()

    questions = [
        "List 5 patients with their next appointment after today",
        "How many appointments were cancelled last month?",
        "Which doctors have the most scheduled appointments this week?",
    ]

    print("2. Questions:")
    for question in questions:
        print(f"\nQuestion: {question}")
        outcome = text2sql.answer(question)

        if outcome.final_sql:
            suffix = " (after fix)" if outcome.repaired else ""
            print(f"SQL{suffix}: {outcome.final_sql}")

        if outcome.error_message:
            print(f"✗ Error: {outcome.error_message}")
            continue

        for i, row in enumerate(outcome.rows[:3]):
            print(f"  {i+1}. {row}")
        if len(outcome.rows) > 3:
            print(f"  ... and {len(outcome.rows) - 3} more rows")

    print("\n=== End of Examples ===")


if __name__ == "__main__":
    main()
