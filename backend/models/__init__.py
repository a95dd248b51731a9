from models.allocation import Allocation, AllocationClass
from models.allocation_run import AllocationRun
from models.base import Base
from models.class_group import ClassGroup
from models.exam_session import ExamSession
from models.room import Room

__all__ = [
	"Allocation",
	"AllocationClass",
	"AllocationRun",
	"Base",
	"ClassGroup",
	"ExamSession",
	"Room",
]
