"""
Sample meals for local development (``flask seed-meals``)
"""

import logging

from .extensions import MEALS
from .helpers import utcnow

logger = logging.getLogger(__name__)

SAMPLE_MEALS = [
    {
        'name': 'Classic Cheeseburger',
        'image': 'https://i.ibb.co/Fk3qt0HW/shine-studio-xg-Aeml2-S7y-U-unsplash.jpg',
        'price': 12.99,
        'category': 'Lunch',
        'ingredients': ['Beef patty', 'Cheddar cheese', 'Lettuce', 'Tomato', 'Brioche bun'],
        'description': 'Juicy beef patty with melted cheddar, fresh lettuce, and tomato in a soft brioche bun.',
        'chefName': 'Hans Müller',
        'userEmail': 'hans.mueller@example.com',
        'chefId': 'chef-1001',
        'chefLocation': 'Berlin',
        'estimatedDeliveryTime': 30,
        'rating': 4.7,
    },
    {
        'name': 'Margherita Pizza',
        'image': 'https://i.ibb.co/pB9KxJf5/ivan-torres-MQUqbmsz-GGM-unsplash.jpg',
        'price': 14.5,
        'category': 'Dinner',
        'ingredients': ['Pizza dough', 'Tomato sauce', 'Fresh mozzarella', 'Basil', 'Olive oil'],
        'description': 'Classic Italian pizza with San Marzano tomatoes, fresh mozzarella, and basil leaves.',
        'chefName': 'Klaus Schmidt',
        'userEmail': 'klaus.schmidt@example.com',
        'chefId': 'chef-1002',
        'chefLocation': 'Munich',
        'estimatedDeliveryTime': 40,
        'rating': 4.9,
    },
    {
        'name': 'Wiener Schnitzel',
        'price': 18.9,
        'category': 'Dinner',
        'ingredients': ['Veal', 'Breadcrumbs', 'Egg', 'Lemon', 'Potato salad'],
        'description': 'Thin breaded veal cutlet fried golden, served with lemon and potato salad.',
        'chefName': 'Franz Weber',
        'userEmail': 'franz.weber@example.com',
        'chefId': 'chef-1003',
        'chefLocation': 'Vienna',
        'estimatedDeliveryTime': 35,
        'rating': 4.8,
    },
    {
        'name': 'Greek Salad',
        'price': 8.9,
        'category': 'Lunch',
        'ingredients': ['Tomato', 'Cucumber', 'Feta', 'Olives', 'Red onion'],
        'description': 'Crisp vegetables with feta and kalamata olives in olive oil.',
        'chefName': 'Petra Hoffmann',
        'userEmail': 'petra.hoffmann@example.com',
        'chefId': 'chef-1005',
        'chefLocation': 'Hamburg',
        'estimatedDeliveryTime': 20,
        'rating': 4.5,
    },
    {
        'name': 'Apple Strudel',
        'price': 5.5,
        'category': 'Dessert',
        'ingredients': ['Apples', 'Cinnamon', 'Raisins', 'Puff pastry'],
        'description': 'Warm flaky pastry filled with spiced apples and raisins.',
        'chefName': 'Erika Braun',
        'userEmail': 'erika.braun@example.com',
        'chefId': 'chef-1011',
        'chefLocation': 'Salzburg',
        'estimatedDeliveryTime': 25,
        'rating': 4.6,
    },
]


def seed_meals(db):
    """Replace the meals collection with SAMPLE_MEALS; returns inserted count"""
    deleted = db[MEALS].delete_many({}).deleted_count
    logger.info('🗑️ Deleted %d existing meals', deleted)

    now = utcnow()
    docs = [dict(meal, status='Available', createdAt=now) for meal in SAMPLE_MEALS]
    inserted = len(db[MEALS].insert_many(docs).inserted_ids)
    logger.info('✅ Inserted %d new meals', inserted)
    return inserted
