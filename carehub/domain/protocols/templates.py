"""Built-in starter protocols offered to every doctor"""

PREDEFINED_TEMPLATES = [
    {
        "name": "Post Facial Filler",
        "duration": 7,
        "description": "Aftercare protocol following a facial filler procedure",
        "days": [
            {
                "day_number": 1,
                "tasks": [
                    {"title": "Drink 2L of water", "description": "Keep yourself well hydrated"},
                    {"title": "Apply hydrating serum", "description": "Apply gently, without massaging"},
                    {"title": "Avoid sun exposure", "description": "Use SPF 60+ sunscreen"},
                ],
            },
            {
                "day_number": 2,
                "tasks": [
                    {"title": "Skip makeup", "description": "No makeup on the treated area"},
                    {"title": "Use sunscreen", "description": "Reapply every 2 hours"},
                    {"title": "Cold compresses", "description": "15 minutes, 3 times a day if swollen"},
                ],
            },
            {
                "day_number": 3,
                "tasks": [
                    {"title": "Take collagen supplement", "description": "As prescribed"},
                    {"title": "Gentle facial drainage", "description": "Light movements, no pressure"},
                ],
            },
        ],
    },
    {
        "name": "21-Day Aesthetic Detox",
        "duration": 21,
        "description": "Complete aesthetic detox protocol",
        "days": [
            {
                "day_number": 1,
                "tasks": [
                    {"title": "Drink 3L of water", "description": "Spread throughout the day"},
                    {"title": "Drink green tea", "description": "2 cups a day"},
                    {"title": "Apply detox mask", "description": "Green clay for 15 minutes"},
                ],
            }
        ],
    },
    {
        "name": "Post Botox",
        "duration": 14,
        "description": "Aftercare following botulinum toxin application",
        "days": [
            {
                "day_number": 1,
                "tasks": [
                    {"title": "Stay upright for 4 hours", "description": "Do not lie down"},
                    {"title": "Do not massage the area", "description": "Avoid touching the treated area"},
                    {"title": "Avoid exercise", "description": "Rest for the first 24 hours"},
                ],
            }
        ],
    },
]


def get_predefined_template(name: str):
    for template in PREDEFINED_TEMPLATES:
        if template["name"].lower() == name.strip().lower():
            return template
    return None
