"""
Trigger Routes

Out-of-band jobs started by an external scheduler.
"""

import logging

from fastapi import APIRouter

from threadbot.api.dependencies import DispatcherDep


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/triggers/question")
async def trigger_question_round(dispatcher: DispatcherDep):
    """
    Ask the next waiting member of every active chat a question.
    
    Returns:
        status, questions_asked and chats_processed
    """
    logger.info("Processing question trigger request")
    return await dispatcher.run_question_round()
